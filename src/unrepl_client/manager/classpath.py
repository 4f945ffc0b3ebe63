"""Classpath resolution for a project.

The classpath handed to tooling is the project directory, then the
project's own extra entries, then the configured global entries. Entries
that do not exist are skipped silently; the rest are resolved to absolute
canonical paths. Order is kept and duplicates are not removed.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from unrepl_client.core.config import get_config
from unrepl_client.manager.project import Project

logger = logging.getLogger(__name__)


def resolve_entries(entries: Iterable[Path | str | None]) -> list[Path]:
    """Drop absent and nonexistent entries, resolve the rest.

    Args:
        entries: Candidate classpath entries, possibly None.

    Returns:
        Canonical absolute paths of entries that exist, in input order.

    """
    resolved: list[Path] = []
    for entry in entries:
        if entry is None:
            continue
        path = Path(entry).expanduser()
        if not path.exists():
            logger.debug("Skipping missing classpath entry: %s", path)
            continue
        resolved.append(path.resolve())
    return resolved


def classpath(project: Project, global_classpath: Iterable[Path | str] | None = None) -> list[Path]:
    """Compute the classpath of a project.

    Args:
        project: Project whose directory and extra entries come first.
        global_classpath: Entries appended after the project's; defaults to
            the configured global_classpath.

    Returns:
        Existing entries, canonicalized, in order.

    """
    if global_classpath is None:
        global_classpath = get_config().global_classpath

    return resolve_entries([project.directory, *project.extra_classpath, *global_classpath])
