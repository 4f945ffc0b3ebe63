"""Exception hierarchy for unrepl-client.

All errors raised by the library derive from UnreplClientError so callers
can catch the whole family with one clause. Messages always name the
offending connection identity and/or channel role.
"""

from typing import Any

__all__ = [
    "ConfigError",
    "EmptyQueueError",
    "InvalidTransitionError",
    "NotFoundError",
    "ProjectNotFoundError",
    "TeardownError",
    "UnreplClientError",
]


class UnreplClientError(Exception):
    """Base class for all unrepl-client errors."""

    pass


class ConfigError(UnreplClientError):
    """Configuration could not be loaded.

    Raised when:
    - Config file is not readable
    - Invalid YAML syntax
    - Schema validation fails
    """

    pass


class NotFoundError(UnreplClientError):
    """A looked-up object does not exist."""

    pass


class ProjectNotFoundError(NotFoundError, KeyError):
    """No project is registered for a connection identity.

    Attributes:
        identity: The identity that was looked up.

    """

    def __init__(self, identity: Any) -> None:
        self.identity = identity
        super().__init__(f"Project not found: {identity}")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0])


class EmptyQueueError(UnreplClientError):
    """A response arrived for a channel with no outstanding request.

    Raised by shift_front() and merge_into_front() on an empty queue. This
    is a breach of the protocol ordering assumption and is fatal for the
    channel session.

    Attributes:
        role: Channel role whose queue was empty.
        identity: Connection identity, when known.

    """

    def __init__(self, role: Any, identity: Any = None) -> None:
        self.role = role
        self.identity = identity
        where = f"{identity}/{role}" if identity is not None else str(role)
        super().__init__(f"No pending evaluation on channel {where}")


class InvalidTransitionError(UnreplClientError):
    """A protocol event does not apply to the head entry's status.

    Attributes:
        role: Channel role of the queue.
        status: Current status of the head entry.
        event: Name of the rejected event.
        identity: Connection identity, when known.

    """

    def __init__(self, role: Any, status: Any, event: str, identity: Any = None) -> None:
        self.role = role
        self.status = status
        self.event = event
        self.identity = identity
        where = f"{identity}/{role}" if identity is not None else str(role)
        super().__init__(
            f"Cannot apply '{event}' to pending evaluation in status '{status}' on channel {where}"
        )


class TeardownError(UnreplClientError):
    """One resource failed to close while quitting a project.

    Never raised by quit(); instances are collected in the teardown report.

    Attributes:
        resource: Human readable name of the resource.
        cause: The underlying exception.

    """

    def __init__(self, resource: str, cause: BaseException) -> None:
        self.resource = resource
        self.cause = cause
        super().__init__(f"Failed to close {resource}: {cause}")
