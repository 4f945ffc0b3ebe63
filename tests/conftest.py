"""Pytest configuration and fixtures for unrepl-client tests."""

from unittest.mock import MagicMock

import pytest

from unrepl_client.manager.connection_pool import ChannelHandle, ChannelRole, ConnectionIdentity, ConnectionPool
from unrepl_client.manager.project import Project
from unrepl_client.manager.registry import ProjectRegistry


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset config singleton before and after each test.

    This ensures tests don't leak configuration between each other and never
    pick up the user's ~/.config/unrepl-client/config.yaml.
    """
    from unrepl_client.core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


class FakeTranscript:
    """Records transcript traffic for assertions."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.disposed = False

    def append(self, text: str) -> None:
        self.lines.append(text)

    def mark(self) -> int:
        return sum(len(line) for line in self.lines)

    def dispose(self) -> None:
        self.disposed = True


@pytest.fixture
def identity() -> ConnectionIdentity:
    return ConnectionIdentity("localhost", 5555)


@pytest.fixture
def transcripts() -> dict[ConnectionIdentity, FakeTranscript]:
    """Transcripts created by transcript_factory, keyed by identity."""
    return {}


@pytest.fixture
def transcript_factory(transcripts):
    def factory(identity: ConnectionIdentity) -> FakeTranscript:
        transcript = FakeTranscript()
        transcripts[identity] = transcript
        return transcript

    return factory


@pytest.fixture
def pool() -> ConnectionPool:
    """Pool with client and auxiliary channels connected."""
    return ConnectionPool(
        [
            (ChannelRole.CLIENT, ChannelHandle(transport=MagicMock(), surface=MagicMock())),
            (ChannelRole.AUXILIARY, ChannelHandle(transport=MagicMock())),
        ]
    )


@pytest.fixture
def project(identity, pool, transcript_factory) -> Project:
    return Project.create(identity, None, pool, None, transcript_factory)


@pytest.fixture
def registry(project) -> ProjectRegistry:
    registry = ProjectRegistry()
    registry.register(project)
    return registry
