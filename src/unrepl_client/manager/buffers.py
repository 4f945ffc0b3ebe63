"""Open buffers and their project scope.

Editors keep open documents bound to the connection they evaluate
against. This module defines the small buffer model the client needs and
selects the buffers that belong to a project.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from unrepl_client.core.config import get_config
from unrepl_client.manager.connection_pool import ConnectionIdentity
from unrepl_client.manager.project import Project

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class OpenBuffer:
    """An open document.

    Attributes:
        path: File backing the document, None for scratch buffers.
        mode: Content type, e.g. "clojure".
        scope: Identity of the connection the buffer evaluates against.

    """

    path: Path | None
    mode: str
    scope: ConnectionIdentity | None = None

    def clear_scope(self) -> None:
        """Unbind the buffer from its connection."""
        self.scope = None


class BufferIndex(Protocol):
    """Source of the currently open buffers."""

    def open_buffers(self) -> Iterable[OpenBuffer]: ...


class InMemoryBufferIndex:
    """BufferIndex over a plain list, for hosts without an editor."""

    def __init__(self, buffers: Iterable[OpenBuffer] = ()) -> None:
        self.buffers: list[OpenBuffer] = list(buffers)

    def open_buffers(self) -> list[OpenBuffer]:
        return list(self.buffers)

    def add(self, buffer: OpenBuffer) -> OpenBuffer:
        self.buffers.append(buffer)
        return buffer


def buffers_of(
    project: Project,
    index: BufferIndex,
    require_connected_to: ConnectionIdentity | None = None,
) -> list[OpenBuffer]:
    """Select open source buffers inside a project's directory.

    Args:
        project: Project whose directory scopes the search.
        index: Source of open buffers.
        require_connected_to: Only keep buffers bound to this identity.

    Returns:
        Matching buffers in index order; empty if the project has no directory.

    """
    if project.directory is None:
        return []

    root = Path(project.directory)
    mode = get_config().source_mode
    selected: list[OpenBuffer] = []
    for buffer in index.open_buffers():
        if buffer.path is None or buffer.mode != mode:
            continue
        if not Path(buffer.path).is_relative_to(root):
            continue
        if require_connected_to is not None and buffer.scope != require_connected_to:
            continue
        selected.append(buffer)
    return selected


def clear_scope(index: BufferIndex, identity: ConnectionIdentity) -> int:
    """Unbind every open buffer bound to identity.

    Returns:
        Number of buffers unbound.

    """
    cleared = 0
    for buffer in index.open_buffers():
        if buffer.scope == identity:
            buffer.clear_scope()
            cleared += 1
    if cleared:
        logger.debug("Cleared scope of %d buffer(s) bound to %s", cleared, identity)
    return cleared
