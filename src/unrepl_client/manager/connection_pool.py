"""Connection identity, channel roles and the per-project connection pool.

A project talks to its server over up to three sockets, one per channel
role. The pool maps each role to the handle that owns the socket and,
optionally, the surface (log buffer, process window) attached to it.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

logger = logging.getLogger(__name__)


class Closeable(Protocol):
    """Anything that can be closed: sockets, streams, surfaces."""

    def close(self) -> None: ...


class ChannelRole(StrEnum):
    """Logical purpose of a socket within a project."""

    CLIENT = "client"
    AUXILIARY = "auxiliary"
    SIDE_CHANNEL = "side-channel"


@dataclass(frozen=True)
class ConnectionIdentity:
    """Stable key of a project: host and port of its primary socket."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, address: str) -> "ConnectionIdentity":
        """Parse "host:port" into an identity.

        Args:
            address: Address string, e.g. "localhost:5555".

        Returns:
            New ConnectionIdentity.

        Raises:
            ValueError: If the address has no port or the port is not a number.

        """
        host, sep, port = address.rpartition(":")
        if not sep or not host:
            raise ValueError(f"Invalid connection address (expected host:port): {address}")
        try:
            return cls(host=host, port=int(port))
        except ValueError:
            raise ValueError(f"Invalid port in connection address: {address}") from None


@dataclass
class ChannelHandle:
    """Transport handle for one channel.

    Attributes:
        transport: The socket or stream carrying the channel.
        surface: Optional surface showing the channel's raw traffic.

    """

    transport: Closeable
    surface: Closeable | None = None


class ConnectionPool:
    """Role-indexed map of channel handles for one project.

    A role's handle is None until that channel is established.
    """

    def __init__(self, handles: Iterable[tuple[ChannelRole, ChannelHandle | None]] = ()) -> None:
        self._handles: dict[ChannelRole, ChannelHandle | None] = {}
        self.set_many(handles)

    def get(self, role: ChannelRole) -> ChannelHandle | None:
        """Get the handle for a role, or None if not connected."""
        return self._handles.get(ChannelRole(role))

    def set_many(self, handles: Iterable[tuple[ChannelRole, ChannelHandle | None]]) -> None:
        """Merge role/handle pairs into the pool.

        Roles not mentioned keep their current handle.

        Args:
            handles: (role, handle) pairs to upsert.

        """
        for role, handle in handles:
            self._handles[ChannelRole(role)] = handle
            logger.debug("Connection pool: %s -> %s", role, "set" if handle else "cleared")

    def live_handles(self) -> list[tuple[ChannelRole, ChannelHandle]]:
        """Return (role, handle) pairs for every established channel."""
        return [(role, handle) for role, handle in self._handles.items() if handle is not None]

    def __iter__(self) -> Iterator[ChannelRole]:
        return iter([role for role, _ in self.live_handles()])

    def __len__(self) -> int:
        return len(self.live_handles())
