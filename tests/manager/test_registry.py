"""Tests for ProjectRegistry class.

Tests registration, lookup by identity and directory, ordering, and removal.
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from unrepl_client.core.exceptions import NotFoundError, ProjectNotFoundError
from unrepl_client.manager.connection_pool import ConnectionIdentity
from unrepl_client.manager.project import Project
from unrepl_client.manager.registry import ProjectRegistry

T0 = datetime(2026, 1, 1, tzinfo=UTC)


def make_project(port: int, transcript_factory, directory: str | None = None, age: int = 0) -> Project:
    identity = ConnectionIdentity("localhost", port)
    return Project(
        identity=identity,
        transcript=transcript_factory(identity),
        directory=Path(directory) if directory is not None else None,
        created_at=T0 + timedelta(seconds=age),
    )


class TestProjectRegistryRegister:
    """Tests for project registration."""

    def test_register_and_lookup(self, transcript_factory):
        registry = ProjectRegistry()
        project = make_project(1, transcript_factory)

        registry.register(project)

        assert registry.lookup(project.identity) is project
        assert project.identity in registry
        assert len(registry) == 1

    def test_register_same_identity_replaces(self, transcript_factory):
        """Registering twice leaves exactly one entry, the newer project."""
        registry = ProjectRegistry()
        first = make_project(1, transcript_factory)
        second = make_project(1, transcript_factory, age=5)

        registry.register(first)
        registry.register(second)

        assert len(registry) == 1
        assert registry.lookup(first.identity) is second

    def test_register_same_project_twice(self, transcript_factory):
        registry = ProjectRegistry()
        project = make_project(1, transcript_factory)

        registry.register(project)
        registry.register(project)

        assert registry.list_all() == [project]


class TestProjectRegistryLookup:
    """Tests for lookup methods."""

    def test_lookup_missing_returns_none(self):
        assert ProjectRegistry().lookup(ConnectionIdentity("nowhere", 1)) is None

    def test_lookup_missing_fail_raises(self):
        """fail_if_missing raises ProjectNotFoundError naming the identity."""
        identity = ConnectionIdentity("nowhere", 1)

        with pytest.raises(ProjectNotFoundError, match="nowhere:1") as exc_info:
            ProjectRegistry().lookup(identity, fail_if_missing=True)

        assert exc_info.value.identity == identity
        assert isinstance(exc_info.value, NotFoundError)
        assert isinstance(exc_info.value, KeyError)

    def test_lookup_by_directory_newest_wins(self, transcript_factory):
        """Two projects on one directory: the later one is returned."""
        registry = ProjectRegistry()
        older = make_project(1, transcript_factory, "/home/u/proj", age=1)
        newer = make_project(2, transcript_factory, "/home/u/proj", age=2)
        registry.register(newer)
        registry.register(older)

        assert registry.lookup_by_directory("/home/u/proj") is newer

    def test_lookup_by_directory_no_normalization(self, transcript_factory, tmp_path, monkeypatch):
        """Relative and absolute spellings are different directories."""
        monkeypatch.chdir(tmp_path)
        registry = ProjectRegistry()
        registry.register(make_project(1, transcript_factory, "proj"))

        assert registry.lookup_by_directory(tmp_path / "proj") is None
        assert registry.lookup_by_directory("proj") is not None

    def test_lookup_by_directory_compares_strings(self, transcript_factory):
        """A trailing slash or doubled separator is a different spelling."""
        registry = ProjectRegistry()
        project = make_project(1, transcript_factory, "/home/u/proj")
        registry.register(project)

        assert registry.lookup_by_directory("/home/u/proj/") is None
        assert registry.lookup_by_directory("/home//u/proj") is None
        assert registry.lookup_by_directory("/home/u/proj") is project
        assert registry.lookup_by_directory(Path("/home/u/proj")) is project

    def test_lookup_by_directory_same_timestamp_prefers_later(self, transcript_factory):
        registry = ProjectRegistry()
        first = make_project(1, transcript_factory, "/home/u/proj")
        second = make_project(2, transcript_factory, "/home/u/proj")
        registry.register(second)
        registry.register(first)

        assert registry.lookup_by_directory("/home/u/proj") is second

    def test_lookup_by_directory_missing(self, transcript_factory):
        registry = ProjectRegistry()
        registry.register(make_project(1, transcript_factory))

        assert registry.lookup_by_directory("/home/u/proj") is None

    def test_list_all_newest_first(self, transcript_factory):
        registry = ProjectRegistry()
        projects = [make_project(port, transcript_factory, age=port) for port in (2, 3, 1)]
        for project in projects:
            registry.register(project)

        ordered = registry.list_all()

        assert [p.identity.port for p in ordered] == [3, 2, 1]
        assert registry.identities() == [p.identity for p in ordered]

    def test_list_all_equal_timestamps_newest_first(self, transcript_factory):
        """Projects created at the same instant keep construction order, reversed."""
        registry = ProjectRegistry()
        projects = [make_project(port, transcript_factory) for port in (1, 2, 3)]
        for project in reversed(projects):
            registry.register(project)

        assert [p.identity.port for p in registry.list_all()] == [3, 2, 1]


class TestProjectRegistryRemove:
    """Tests for removal."""

    def test_remove_returns_project(self, transcript_factory, transcripts):
        registry = ProjectRegistry()
        project = make_project(1, transcript_factory)
        registry.register(project)

        removed = registry.remove(project.identity)

        assert removed is project
        assert project.identity not in registry
        # Removal does not release resources
        assert not transcripts[project.identity].disposed

    def test_remove_unknown_returns_none(self):
        assert ProjectRegistry().remove(ConnectionIdentity("h", 1)) is None

    def test_remove_expected_project(self, transcript_factory):
        registry = ProjectRegistry()
        project = make_project(1, transcript_factory)
        registry.register(project)

        assert registry.remove(project.identity, expected=project) is project
        assert project.identity not in registry

    def test_remove_keeps_replacement(self, transcript_factory):
        """A project registered in place of the expected one stays."""
        registry = ProjectRegistry()
        old = make_project(1, transcript_factory)
        replacement = make_project(1, transcript_factory, age=1)
        registry.register(old)
        registry.register(replacement)

        assert registry.remove(old.identity, expected=old) is None
        assert registry.lookup(old.identity) is replacement
