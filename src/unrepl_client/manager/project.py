"""Project: one live connection to an evaluation server.

Encapsulates state for one connected server including:
- Connection identification (identity, creation time, working directory)
- Server process and channel handles
- Current evaluation namespace
- One pending-evaluation queue per channel role
- Session actions advertised by the server
"""

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from subprocess import Popen
from typing import Any, Protocol

from unrepl_client.manager.connection_pool import (
    ChannelRole,
    Closeable,
    ConnectionIdentity,
    ConnectionPool,
)
from unrepl_client.manager.pending_eval import PendingEvalQueue

logger = logging.getLogger(__name__)

# Breaks created_at ties in registry ordering
_creation_sequence = itertools.count()


class Transcript(Protocol):
    """Human-facing session surface (REPL buffer, console, log)."""

    def append(self, text: str) -> None: ...

    def mark(self) -> int:
        """Return the current end position of the transcript."""
        ...

    def dispose(self) -> None: ...


TranscriptFactory = Callable[[ConnectionIdentity], Transcript]


@dataclass
class ServerHandle:
    """Server process owning the project's sockets.

    Attributes:
        process: The server subprocess.
        surface: Optional surface showing the process output.

    """

    process: Popen[bytes]
    surface: Closeable | None = None


@dataclass(eq=False)
class Project:
    """State for one connected evaluation server.

    Attributes:
        identity: Host/port of the primary socket; registry key.
        transcript: Session surface, owned until quit.
        connection_pool: Role to channel handle map.
        directory: Working root, None for ad-hoc connections. Kept verbatim.
        server: Server process handle, None for externally managed servers.
        namespace: Current evaluation namespace.
        created_at: Construction time, used for registry ordering.
        sequence: Construction counter; orders projects with equal created_at.
        pending_evals: One queue per channel role.
        session_actions: Capabilities advertised by the server's hello.
        extra_classpath: Project specific classpath entries.
        closed: Set once teardown started; events are ignored afterwards.

    """

    identity: ConnectionIdentity
    transcript: Transcript
    connection_pool: ConnectionPool = field(default_factory=ConnectionPool)
    directory: Path | None = None
    server: ServerHandle | None = None
    namespace: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    sequence: int = field(default_factory=lambda: next(_creation_sequence), repr=False)
    pending_evals: dict[ChannelRole, PendingEvalQueue] = field(default_factory=dict)
    session_actions: dict[str, Any] = field(default_factory=dict)
    extra_classpath: list[Path] = field(default_factory=list)
    closed: bool = False

    def __post_init__(self) -> None:
        for role in ChannelRole:
            self.pending_evals.setdefault(role, PendingEvalQueue(role, self.identity))

    @classmethod
    def create(
        cls,
        identity: ConnectionIdentity,
        directory: Path | None,
        connection_pool: ConnectionPool,
        server: ServerHandle | None,
        transcript_factory: TranscriptFactory,
    ) -> "Project":
        """Create a new, unregistered Project.

        Args:
            identity: Connection identity of the primary socket.
            directory: Project working root, or None.
            connection_pool: Channel handles for the project.
            server: Server process handle, or None.
            transcript_factory: Creates the transcript for the identity.

        Returns:
            New Project instance with empty queues and no namespace.

        """
        transcript = transcript_factory(identity)
        project = cls(
            identity=identity,
            transcript=transcript,
            connection_pool=connection_pool,
            directory=directory,
            server=server,
        )
        logger.info("Created project %s (directory: %s)", identity, directory or "-")
        return project

    def queue(self, role: ChannelRole) -> PendingEvalQueue:
        """Get the pending evaluation queue for a channel role."""
        return self.pending_evals[ChannelRole(role)]

    def set_session_actions(self, actions: dict[str, Any] | None) -> None:
        """Replace the server-advertised session actions."""
        self.session_actions = dict(actions or {})
        logger.debug("Project %s session actions: %s", self.identity, sorted(self.session_actions))

    def set_namespace(self, namespace: str | None) -> None:
        """Update the current evaluation namespace."""
        if namespace and namespace != self.namespace:
            logger.debug("Project %s namespace: %s -> %s", self.identity, self.namespace, namespace)
            self.namespace = namespace

    def pending_count(self) -> int:
        """Total number of pending evaluations across all channels."""
        return sum(len(queue) for queue in self.pending_evals.values())

    def to_summary(self) -> dict[str, Any]:
        """Get summary dict for session selection UIs."""
        return {
            "identity": str(self.identity),
            "directory": str(self.directory) if self.directory is not None else None,
            "namespace": self.namespace,
            "created_at": self.created_at.isoformat(),
            "server_pid": self.server.process.pid if self.server else None,
            "channels": [role.value for role, _ in self.connection_pool.live_handles()],
            "pending": {role.value: len(queue) for role, queue in self.pending_evals.items()},
            "closed": self.closed,
        }


def actions_of(project: Project, name: str) -> Any:
    """Look up a session action advertised by the server.

    Returns:
        The action descriptor, or None if the server did not advertise it.

    """
    return project.session_actions.get(name)
