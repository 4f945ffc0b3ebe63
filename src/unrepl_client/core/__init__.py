"""Core infrastructure: configuration and exceptions."""

from unrepl_client.core.config import ClientConfig, get_config, load_config, load_config_file
from unrepl_client.core.exceptions import (
    ConfigError,
    EmptyQueueError,
    InvalidTransitionError,
    NotFoundError,
    ProjectNotFoundError,
    TeardownError,
    UnreplClientError,
)

__all__ = [
    "ClientConfig",
    "ConfigError",
    "EmptyQueueError",
    "InvalidTransitionError",
    "NotFoundError",
    "ProjectNotFoundError",
    "TeardownError",
    "UnreplClientError",
    "get_config",
    "load_config",
    "load_config_file",
]
