"""Pending evaluation entries and the per-channel queue state machine.

Every input sent on a channel becomes a PendingEvalEntry at the tail of
that channel's PendingEvalQueue. Protocol events for the channel always
apply to the head entry, because the server answers inputs in the order
they were sent.

Entry lifecycle:
    sent --read--> read                    (assign group id, stamp prompt marker)
    read --read--> read                    (re-read: drop group id and actions first)
    read --started-eval--> started-eval    (attach interrupt/background actions)
    read|started-eval --eval--> eval             (terminal, result delivered)
    read|started-eval --exception--> exception   (terminal, result delivered)
    any --out/err/log--> unchanged         (stdout callback)
    eval|exception --prompt--> dequeued

A terminal entry stays at the head until the next prompt, since output
produced by the evaluation may still arrive after its result.
"""

import logging
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from unrepl_client.core.exceptions import EmptyQueueError, InvalidTransitionError
from unrepl_client.manager.connection_pool import ChannelRole, ConnectionIdentity

logger = logging.getLogger(__name__)


class EvalStatus(StrEnum):
    """Protocol progress of one pending evaluation."""

    SENT = "sent"
    READ = "read"
    STARTED_EVAL = "started-eval"
    EVAL = "eval"
    EXCEPTION = "exception"

    @property
    def is_terminal(self) -> bool:
        """True once the result has been delivered."""
        return self in (EvalStatus.EVAL, EvalStatus.EXCEPTION)


class OutcomeKind(StrEnum):
    """How an evaluation ended."""

    VALUE = "value"
    EXCEPTION = "exception"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class EvalOutcome:
    """Result handed to an entry's result callback."""

    kind: OutcomeKind
    payload: Any = None


@dataclass(frozen=True)
class ReplSource:
    """Input typed at the interactive prompt.

    Attributes:
        history_index: Position of the input in the REPL history.
        prompt_marker: Transcript position of the prompt that read the input;
            stamped when the server reads it.

    """

    history_index: int
    prompt_marker: int | None = None


@dataclass(frozen=True)
class RegionSource:
    """Input taken from a region of an open buffer."""

    buffer: Any
    payload: str


SourceContext = ReplSource | RegionSource
ResultCallback = Callable[["PendingEvalEntry", EvalOutcome], Any]
StdoutCallback = Callable[["PendingEvalEntry", Any], Any]

# Fields merge_into_front() may touch; callbacks are fixed at submission
_MERGEABLE_FIELDS = frozenset({"status", "group_id", "actions", "source", "result_delivered"})


@dataclass(eq=False)
class PendingEvalEntry:
    """One submitted input and the protocol state gathered for it.

    Attributes:
        source: Where the input came from; the kind never changes.
        result_callback: Called once with the final EvalOutcome.
        stdout_callback: Called for each output chunk attributed to the entry.
        status: Current protocol status.
        group_id: Server correlation id, assigned on read.
        actions: Interrupt/background controls, attached on started-eval.
        result_delivered: True once result_callback has been called.

    """

    source: SourceContext
    result_callback: ResultCallback | None = None
    stdout_callback: StdoutCallback | None = None
    status: EvalStatus = EvalStatus.SENT
    group_id: str | None = None
    actions: dict[str, Any] | None = None
    result_delivered: bool = False

    @property
    def is_interactive(self) -> bool:
        """True if the input came from the REPL prompt."""
        return isinstance(self.source, ReplSource)

    def deliver(self, outcome: EvalOutcome) -> bool:
        """Call the result callback unless a result was already delivered.

        Callback errors are logged, not raised.

        Returns:
            True if this call delivered the outcome.

        """
        if self.result_delivered:
            return False
        self.result_delivered = True
        if self.result_callback is not None:
            try:
                self.result_callback(self, outcome)
            except Exception:
                logger.exception("Result callback failed (group %s)", self.group_id)
        return True

    def emit(self, chunk: Any) -> None:
        """Call the stdout callback with one output chunk."""
        if self.stdout_callback is None:
            return
        try:
            self.stdout_callback(self, chunk)
        except Exception:
            logger.exception("Stdout callback failed (group %s)", self.group_id)


class PendingEvalQueue:
    """FIFO of pending evaluations for one (project, channel role) pair.

    Only the head entry is ever mutated. The generic operations
    (peek_front, push_back, merge_into_front, shift_front) are the sole way
    to change the queue; the transition methods validate the head's status
    before going through them.

    Attributes:
        role: Channel role the queue belongs to.
        identity: Connection identity of the owning project, for messages.

    """

    def __init__(self, role: ChannelRole, identity: ConnectionIdentity | None = None) -> None:
        self.role = ChannelRole(role)
        self.identity = identity
        self._entries: deque[PendingEvalEntry] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PendingEvalEntry]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return f"PendingEvalQueue(role={self.role.value!r}, identity={self.identity}, size={len(self)})"

    # -- generic operations ------------------------------------------------

    def peek_front(self) -> PendingEvalEntry | None:
        """Return the head entry without removing it."""
        return self._entries[0] if self._entries else None

    def push_back(self, entry: PendingEvalEntry) -> None:
        """Append a newly submitted entry."""
        self._entries.append(entry)
        logger.debug("%s/%s: queued evaluation (depth %d)", self.identity, self.role, len(self))

    def merge_into_front(self, **fields: Any) -> PendingEvalEntry:
        """Update fields of the head entry in place.

        Args:
            **fields: Field values to set on the head entry.

        Returns:
            The updated head entry.

        Raises:
            EmptyQueueError: If the queue is empty.
            TypeError: If a field is unknown or may not be merged.
            ValueError: If a new source has a different kind than the old one.

        """
        unknown = set(fields) - _MERGEABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot merge fields into pending evaluation: {', '.join(sorted(unknown))}")

        head = self._require_head("merge")
        new_source = fields.get("source")
        if new_source is not None and type(new_source) is not type(head.source):
            raise ValueError(
                f"Source kind of a pending evaluation cannot change "
                f"({type(head.source).__name__} -> {type(new_source).__name__})"
            )
        for name, value in fields.items():
            setattr(head, name, value)
        return head

    def shift_front(self) -> PendingEvalEntry:
        """Remove and return the head entry.

        Raises:
            EmptyQueueError: If the queue is empty.

        """
        if not self._entries:
            raise EmptyQueueError(self.role, self.identity)
        entry = self._entries.popleft()
        logger.debug("%s/%s: dequeued evaluation (depth %d)", self.identity, self.role, len(self))
        return entry

    def clear(self) -> list[PendingEvalEntry]:
        """Drop every entry and return them in queue order."""
        dropped = list(self._entries)
        self._entries.clear()
        return dropped

    # -- head accessors ------------------------------------------------------

    @property
    def status(self) -> EvalStatus | None:
        head = self.peek_front()
        return head.status if head else None

    @property
    def group_id(self) -> str | None:
        head = self.peek_front()
        return head.group_id if head else None

    @property
    def actions(self) -> dict[str, Any] | None:
        head = self.peek_front()
        return head.actions if head else None

    @property
    def result_callback(self) -> ResultCallback | None:
        head = self.peek_front()
        return head.result_callback if head else None

    @property
    def stdout_callback(self) -> StdoutCallback | None:
        head = self.peek_front()
        return head.stdout_callback if head else None

    # -- transitions ------------------------------------------------------------

    def mark_read(self, group_id: str | None, prompt_marker: int | None = None) -> PendingEvalEntry:
        """Apply a read event: the server parsed the head's input.

        A repeated read (multi-form input) discards the group id and actions
        from the previous parse before assigning the new group id.

        Args:
            group_id: Correlation id assigned by the server.
            prompt_marker: Transcript position to stamp on interactive input.

        """
        head = self._transition("read", EvalStatus.SENT, EvalStatus.READ)
        if head.status is EvalStatus.READ:
            self.merge_into_front(group_id=None, actions=None)

        fields: dict[str, Any] = {"status": EvalStatus.READ, "group_id": group_id}
        if isinstance(head.source, ReplSource) and prompt_marker is not None:
            fields["source"] = replace(head.source, prompt_marker=prompt_marker)
        return self.merge_into_front(**fields)

    def mark_started(self, actions: dict[str, Any] | None) -> PendingEvalEntry:
        """Apply a started-eval event and attach the evaluation's actions."""
        self._transition("started-eval", EvalStatus.READ)
        return self.merge_into_front(status=EvalStatus.STARTED_EVAL, actions=actions)

    def complete(self, payload: Any) -> PendingEvalEntry:
        """Apply an eval event: deliver the value to the result callback."""
        self._transition("eval", EvalStatus.READ, EvalStatus.STARTED_EVAL)
        head = self.merge_into_front(status=EvalStatus.EVAL)
        head.deliver(EvalOutcome(OutcomeKind.VALUE, payload))
        return head

    def fail(self, payload: Any) -> PendingEvalEntry:
        """Apply an exception event: deliver the error to the result callback."""
        self._transition("exception", EvalStatus.READ, EvalStatus.STARTED_EVAL)
        head = self.merge_into_front(status=EvalStatus.EXCEPTION)
        head.deliver(EvalOutcome(OutcomeKind.EXCEPTION, payload))
        return head

    def write_output(self, chunk: Any) -> PendingEvalEntry:
        """Hand an output chunk to the head entry; status is unchanged."""
        head = self._require_head("output")
        head.emit(chunk)
        return head

    def ready(self) -> PendingEvalEntry | None:
        """Apply a prompt event: dequeue the head if it has finished.

        A prompt also arrives on connect and between reads of a multi-form
        input; in those cases nothing is dequeued.

        Returns:
            The dequeued entry, or None.

        """
        head = self.peek_front()
        if head is None or not head.status.is_terminal:
            return None
        return self.shift_front()

    def _require_head(self, event: str) -> PendingEvalEntry:
        head = self.peek_front()
        if head is None:
            logger.error("%s/%s: '%s' event with no pending evaluation", self.identity, self.role, event)
            raise EmptyQueueError(self.role, self.identity)
        return head

    def _transition(self, event: str, *allowed: EvalStatus) -> PendingEvalEntry:
        head = self._require_head(event)
        if head.status not in allowed:
            raise InvalidTransitionError(self.role, head.status, event, self.identity)
        return head
