"""Project registry.

Single source of truth for which projects currently exist, keyed by
connection identity. The registry is an explicit object created at
process start and drained at shutdown (see ProjectSupervisor.shutdown).
It owns the mapping only; releasing a project's resources is the job of
ProjectSupervisor.quit().
"""

import logging
import threading
from pathlib import Path
from typing import Literal, overload

from unrepl_client.core.exceptions import ProjectNotFoundError
from unrepl_client.manager.connection_pool import ConnectionIdentity
from unrepl_client.manager.project import Project

logger = logging.getLogger(__name__)


class ProjectRegistry:
    """Maps connection identities to live projects.

    register() and remove() are atomic with respect to event delivery on
    other threads; lookups see either the old or the new mapping.
    """

    def __init__(self) -> None:
        self._projects: dict[ConnectionIdentity, Project] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._projects)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._projects

    def register(self, project: Project) -> None:
        """Insert a project, replacing any project with the same identity.

        Args:
            project: Project to register.

        """
        with self._lock:
            previous = self._projects.get(project.identity)
            self._projects[project.identity] = project

        if previous is not None and previous is not project:
            logger.warning("Replaced registered project %s", project.identity)
        else:
            logger.info("Registered project %s", project.identity)

    @overload
    def lookup(self, identity: ConnectionIdentity, fail_if_missing: Literal[True]) -> Project: ...

    @overload
    def lookup(self, identity: ConnectionIdentity, fail_if_missing: bool = False) -> Project | None: ...

    def lookup(self, identity: ConnectionIdentity, fail_if_missing: bool = False) -> Project | None:
        """Get project by identity.

        Args:
            identity: Connection identity of the project.
            fail_if_missing: Raise instead of returning None.

        Returns:
            The Project, or None if not registered.

        Raises:
            ProjectNotFoundError: If fail_if_missing and not registered.

        """
        with self._lock:
            project = self._projects.get(identity)
        if project is None and fail_if_missing:
            raise ProjectNotFoundError(identity)
        return project

    def lookup_by_directory(self, path: Path | str) -> Project | None:
        """Get the newest project whose directory equals path.

        Directories are compared as strings, str(path) == str(directory),
        without resolving symlinks or making them absolute. "proj" and
        "/home/u/proj" are different directories, and so are "/home/u/proj/"
        and "/home/u/proj".

        Args:
            path: Project directory to look up.

        Returns:
            Most recently created matching Project, or None.

        """
        wanted = str(path)
        matches = [
            project
            for project in self.list_all()
            if project.directory is not None and str(project.directory) == wanted
        ]
        return matches[0] if matches else None

    def list_all(self) -> list[Project]:
        """Get all projects, newest first."""
        with self._lock:
            projects = list(self._projects.values())
        return sorted(
            projects,
            key=lambda project: (project.created_at, project.sequence),
            reverse=True,
        )

    def identities(self) -> list[ConnectionIdentity]:
        """Get identities of all projects, newest first."""
        return [project.identity for project in self.list_all()]

    def remove(
        self, identity: ConnectionIdentity, expected: Project | None = None
    ) -> Project | None:
        """Remove a project from the registry.

        Does not release any of the project's resources.

        Args:
            identity: Connection identity of the project.
            expected: Only remove if this exact project is still registered
                under identity; a replacement registered meanwhile is kept.

        Returns:
            The removed Project, or None if nothing was removed.

        """
        with self._lock:
            current = self._projects.get(identity)
            if expected is not None and current is not expected:
                project = None
            else:
                project = self._projects.pop(identity, None)

        if project is None and current is not None:
            logger.info("Kept replacement project registered as %s", identity)
            return None
        if project is None:
            logger.debug("Remove of unknown project %s ignored", identity)
        else:
            logger.info("Unregistered project %s", identity)
        return project
