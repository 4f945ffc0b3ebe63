"""Client configuration.

Configuration is a frozen Pydantic model loaded from YAML. A process-wide
instance is exposed through get_config(); it is created with defaults on
first access unless load_config() or load_config_file() ran before.

Usage:
    from unrepl_client.core.config import get_config

    config = get_config()
    for path in config.global_classpath:
        ...

Example config.yaml:
    global_classpath:
      - /usr/share/java/clojure.jar
    source_mode: clojure
    server_shutdown_timeout: 5
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from unrepl_client.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# XDG-compliant config location
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "unrepl-client"
DEFAULT_CONFIG_FILE = "config.yaml"

DEFAULT_SOURCE_MODE = "clojure"
DEFAULT_SERVER_SHUTDOWN_TIMEOUT = 5.0

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ClientConfig(BaseModel):
    """Process-wide client settings.

    Attributes:
        global_classpath: Extra classpath entries appended to every project.
        source_mode: Content type of buffers that belong to a project.
        server_shutdown_timeout: Seconds to wait after SIGTERM before SIGKILL.
        notify_cancelled_on_quit: Deliver a cancelled outcome to pending
            evaluations when their project quits.
        log_level: Root log level used by the CLI.

    """

    model_config = ConfigDict(frozen=True)

    global_classpath: list[Path] = Field(
        default_factory=list,
        description="Additional classpath entries merged into every project's classpath",
    )
    source_mode: str = Field(
        default=DEFAULT_SOURCE_MODE,
        min_length=1,
        description="Buffer content type considered project source",
    )
    server_shutdown_timeout: float = Field(
        default=DEFAULT_SERVER_SHUTDOWN_TIMEOUT,
        ge=0,
        description="Seconds to wait for a server process to exit before killing it",
    )
    notify_cancelled_on_quit: bool = Field(
        default=True,
        description="Call result callbacks with a cancelled outcome for evaluations dropped on quit",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level for the command line interface",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_VALID_LOG_LEVELS)}")
        return level


_config: ClientConfig | None = None


def load_config(data: dict[str, Any] | None = None) -> ClientConfig:
    """Validate a config mapping and install it as the process config.

    Args:
        data: Raw config values; None installs defaults.

    Returns:
        The installed ClientConfig.

    Raises:
        ConfigError: If validation fails.

    """
    global _config
    try:
        config = ClientConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    _config = config
    return config


def load_config_file(path: Path | None = None) -> ClientConfig:
    """Load YAML config from path and install it as the process config.

    A missing default file is not an error; defaults are used. A missing
    explicitly given file is.

    Args:
        path: Config file; defaults to ~/.config/unrepl-client/config.yaml.

    Returns:
        The installed ClientConfig.

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable,
            not valid YAML, or fails validation.

    """
    explicit = path is not None
    config_path = path if path is not None else DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.debug("No config file at %s, using defaults", config_path)
        return load_config(None)

    try:
        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    config = load_config(data)
    logger.info("Loaded config from %s", config_path)
    return config


def get_config() -> ClientConfig:
    """Return the process config, installing defaults on first use."""
    global _config
    if _config is None:
        _config = ClientConfig()
    return _config


def _reset_config() -> None:
    """Drop the process config. For tests."""
    global _config
    _config = None
