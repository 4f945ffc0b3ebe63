"""Decoded protocol messages.

The transport layer decodes each message from the wire into a sequence
[tag, payload, group_id]; the group id is omitted for messages not tied
to an input. This module turns those sequences into ProtocolEvent
instances the dispatcher can act on.

Tags may be keyword-like strings with a leading colon and a namespace
(":unrepl/hello"); both are stripped.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

# Namespaces whose tags map onto the plain event names
KNOWN_TAG_NAMESPACES = ("unrepl",)


class EventKind(StrEnum):
    """Kinds of messages a channel delivers."""

    HELLO = "hello"
    READ = "read"
    STARTED_EVAL = "started-eval"
    EVAL = "eval"
    EXCEPTION = "exception"
    OUT = "out"
    ERR = "err"
    LOG = "log"
    PROMPT = "prompt"
    BYE = "bye"

    @property
    def is_stdout_like(self) -> bool:
        """True for output interleaved with evaluations."""
        return self in (EventKind.OUT, EventKind.ERR, EventKind.LOG)

    @property
    def is_ready(self) -> bool:
        """True for the signal that the server accepts new input."""
        return self is EventKind.PROMPT


@dataclass(frozen=True)
class ProtocolEvent:
    """One decoded message.

    Attributes:
        kind: Event kind.
        payload: Message payload as decoded by the transport.
        group_id: Correlation id of the input the message belongs to.

    """

    kind: EventKind
    payload: Any = None
    group_id: str | None = None


def normalize_tag(tag: Any) -> str:
    """Strip keyword colon and known namespace from a tag."""
    name = str(getattr(tag, "name", tag)).lstrip(":")
    namespace, sep, local = name.partition("/")
    if sep and namespace in KNOWN_TAG_NAMESPACES:
        return local
    return name


def parse_message(message: Sequence[Any]) -> ProtocolEvent | None:
    """Convert one decoded message into an event.

    Args:
        message: [tag, payload] or [tag, payload, group_id].

    Returns:
        ProtocolEvent, or None for empty messages and unknown tags.

    """
    if not message:
        logger.warning("Ignoring empty protocol message")
        return None

    tag = normalize_tag(message[0])
    try:
        kind = EventKind(tag)
    except ValueError:
        logger.debug("Ignoring protocol message with unknown tag: %s", tag)
        return None

    payload = message[1] if len(message) > 1 else None
    group_id = message[2] if len(message) > 2 else None
    return ProtocolEvent(
        kind=kind,
        payload=payload,
        group_id=str(group_id) if group_id is not None else None,
    )


def parse_messages(messages: Iterable[Sequence[Any]]) -> Iterator[ProtocolEvent]:
    """Lazily convert decoded messages, skipping those that are not events."""
    for message in messages:
        event = parse_message(message)
        if event is not None:
            yield event
