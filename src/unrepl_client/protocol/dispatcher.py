"""Apply protocol events to projects.

The dispatcher is the only writer of pending-evaluation queues. Inputs
enter through submit(); decoded events for a (project, role) pair are fed
through dispatch() or consume() strictly in arrival order, and each one
applies exactly one transition to the head of that role's queue.

Resolution is explicit: identity -> Project (registry) -> role queue.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from unrepl_client.core.exceptions import ProjectNotFoundError
from unrepl_client.manager.connection_pool import ChannelHandle, ChannelRole, ConnectionIdentity
from unrepl_client.manager.pending_eval import (
    PendingEvalEntry,
    PendingEvalQueue,
    ResultCallback,
    SourceContext,
    StdoutCallback,
)
from unrepl_client.manager.project import Project
from unrepl_client.manager.registry import ProjectRegistry
from unrepl_client.protocol.events import EventKind, ProtocolEvent

logger = logging.getLogger(__name__)

# Prompt payload keys carrying the current namespace, most specific first
PROMPT_NAMESPACE_KEYS = ("clojure.core/*ns*", "*ns*", "ns")

InputWriter = Callable[[ChannelHandle | None, str], None]
Handler = Callable[[Project, PendingEvalQueue, ProtocolEvent], PendingEvalEntry | None]


def _mapping_get(payload: Any, key: str) -> Any:
    if isinstance(payload, Mapping):
        return payload.get(key)
    return None


def namespace_from_prompt(payload: Any) -> str | None:
    """Extract the namespace name from a prompt payload."""
    for key in PROMPT_NAMESPACE_KEYS:
        value = _mapping_get(payload, key)
        if value is not None:
            # Namespace values may arrive as tagged objects with a name
            return str(getattr(value, "name", value))
    return None


class EventDispatcher:
    """Routes submissions and protocol events to project queues.

    Attributes:
        registry: Registry used to resolve identities.
        writer: Optional callable sending input text over a channel handle;
            when None the caller sends input itself.

    """

    def __init__(self, registry: ProjectRegistry, writer: InputWriter | None = None) -> None:
        self.registry = registry
        self.writer = writer
        self._handlers: dict[EventKind, Handler] = {
            EventKind.HELLO: self._on_hello,
            EventKind.READ: self._on_read,
            EventKind.STARTED_EVAL: self._on_started_eval,
            EventKind.EVAL: self._on_eval,
            EventKind.EXCEPTION: self._on_exception,
            EventKind.OUT: self._on_output,
            EventKind.ERR: self._on_output,
            EventKind.LOG: self._on_output,
            EventKind.PROMPT: self._on_prompt,
            EventKind.BYE: self._on_bye,
        }

    def submit(
        self,
        identity: ConnectionIdentity,
        role: ChannelRole,
        text: str,
        source: SourceContext,
        result_callback: ResultCallback | None = None,
        stdout_callback: StdoutCallback | None = None,
    ) -> PendingEvalEntry:
        """Send input on a channel and track it as a pending evaluation.

        Args:
            identity: Project to evaluate in.
            role: Channel to send on.
            text: Input text.
            source: Where the input came from.
            result_callback: Called once with the outcome.
            stdout_callback: Called for output produced by the evaluation.

        Returns:
            The new entry, with status sent.

        Raises:
            ProjectNotFoundError: If the project is unknown or quitting.

        """
        project = self.registry.lookup(identity, fail_if_missing=True)
        if project.closed:
            raise ProjectNotFoundError(identity)

        role = ChannelRole(role)
        if self.writer is not None:
            self.writer(project.connection_pool.get(role), text)

        entry = PendingEvalEntry(
            source=source,
            result_callback=result_callback,
            stdout_callback=stdout_callback,
        )
        project.queue(role).push_back(entry)
        return entry

    def dispatch(
        self,
        identity: ConnectionIdentity,
        role: ChannelRole,
        event: ProtocolEvent,
    ) -> PendingEvalEntry | None:
        """Apply one event to a project's channel.

        Events for unknown or quitting projects are dropped.

        Returns:
            The entry the event applied to, if any.

        Raises:
            EmptyQueueError: If an evaluation event arrives with nothing pending.
            InvalidTransitionError: If the event does not fit the head's status.

        """
        project = self.registry.lookup(identity)
        if project is None or project.closed:
            logger.debug("Dropping %s event for inactive project %s", event.kind, identity)
            return None

        queue = project.queue(role)
        return self._handlers[event.kind](project, queue, event)

    def consume(
        self,
        identity: ConnectionIdentity,
        role: ChannelRole,
        events: Iterable[ProtocolEvent],
    ) -> int:
        """Apply a stream of events in order.

        Returns:
            Number of events applied.

        """
        count = 0
        for event in events:
            self.dispatch(identity, role, event)
            count += 1
        return count

    def _on_hello(self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent) -> None:
        project.set_session_actions(_mapping_get(event.payload, "actions"))
        logger.info("Session started on %s/%s", project.identity, queue.role)
        return None

    def _on_read(
        self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent
    ) -> PendingEvalEntry:
        head = queue.peek_front()
        marker = project.transcript.mark() if head is not None and head.is_interactive else None
        return queue.mark_read(event.group_id, prompt_marker=marker)

    def _on_started_eval(
        self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent
    ) -> PendingEvalEntry:
        return queue.mark_started(_mapping_get(event.payload, "actions"))

    def _on_eval(
        self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent
    ) -> PendingEvalEntry:
        return queue.complete(event.payload)

    def _on_exception(
        self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent
    ) -> PendingEvalEntry:
        return queue.fail(event.payload)

    def _on_output(
        self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent
    ) -> PendingEvalEntry | None:
        head = queue.peek_front()
        if head is not None and event.group_id is not None and head.group_id == event.group_id:
            return queue.write_output(event.payload)

        # Output from another thread or a finished evaluation
        project.transcript.append(str(event.payload))
        return None

    def _on_prompt(
        self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent
    ) -> PendingEvalEntry | None:
        project.set_namespace(namespace_from_prompt(event.payload))
        return queue.ready()

    def _on_bye(self, project: Project, queue: PendingEvalQueue, event: ProtocolEvent) -> None:
        logger.info("Server closed session on %s/%s", project.identity, queue.role)
        return None
