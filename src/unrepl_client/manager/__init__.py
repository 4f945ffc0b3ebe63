"""Project and pending-evaluation management for unrepl-client.

This package tracks the live connections (projects) of a client and the
evaluations outstanding on each of their channels.

Public API:
    Project: State of one connected evaluation server
    ProjectRegistry: Identity to project table
    ProjectSupervisor: Project teardown and shutdown drain
    ConnectionPool: Role to channel handle map
    PendingEvalQueue: Per-channel state machine of pending evaluations
"""

from .buffers import BufferIndex, InMemoryBufferIndex, OpenBuffer, buffers_of
from .classpath import classpath
from .connection_pool import ChannelHandle, ChannelRole, ConnectionIdentity, ConnectionPool
from .pending_eval import (
    EvalOutcome,
    EvalStatus,
    OutcomeKind,
    PendingEvalEntry,
    PendingEvalQueue,
    RegionSource,
    ReplSource,
)
from .project import Project, ServerHandle, Transcript, actions_of
from .registry import ProjectRegistry
from .supervisor import ProjectSupervisor, TeardownReport

__all__ = [
    "BufferIndex",
    "ChannelHandle",
    "ChannelRole",
    "ConnectionIdentity",
    "ConnectionPool",
    "EvalOutcome",
    "EvalStatus",
    "InMemoryBufferIndex",
    "OpenBuffer",
    "OutcomeKind",
    "PendingEvalEntry",
    "PendingEvalQueue",
    "Project",
    "ProjectRegistry",
    "ProjectSupervisor",
    "RegionSource",
    "ReplSource",
    "ServerHandle",
    "TeardownReport",
    "Transcript",
    "actions_of",
    "buffers_of",
    "classpath",
]
