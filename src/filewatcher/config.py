"""Configuration for the filewatcher package."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import ConfigError

LOG_LEVEL_ENV = "filewatcher_log_level"


@dataclass
class WatcherConfig:
    """
    Configuration options for the file watcher agent.

    Attributes:
        quiet_period_ms: Milliseconds without new events before a batch is flushed
        summary_max_length: Cap on the diagnostic batch summary length
        coordinator_url: Base URL of the build coordinator
        installer_path: Path to the CLI used to request a project sync
        log_dir: Directory for the log file
        log_level: Logging level name
        request_timeout_s: Timeout for coordinator HTTP requests
        recursive: Whether project roots are watched recursively
        shutdown_timeout_s: How long close() waits for in-flight syncs
    """
    quiet_period_ms: int = 1000
    summary_max_length: int = 256
    coordinator_url: str = "http://localhost:9090"
    installer_path: str = "cwctl"
    log_dir: Path = field(default_factory=lambda: Path.home() / ".filewatcher")
    log_level: str = "INFO"
    request_timeout_s: float = 10.0
    recursive: bool = True
    shutdown_timeout_s: float = 30.0

    def __post_init__(self):
        if isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

    def validate(self) -> None:
        """
        Check the configuration for values the agent cannot run with.

        Raises:
            ConfigError: If a value is out of range or missing
        """
        if not self.installer_path or not self.installer_path.strip():
            raise ConfigError("Path to installer must be specified.")
        if self.quiet_period_ms <= 0:
            raise ConfigError(f"quiet_period_ms must be positive: {self.quiet_period_ms}")
        if self.summary_max_length <= 0:
            raise ConfigError(
                f"summary_max_length must be positive: {self.summary_max_length}"
            )
        if self.request_timeout_s <= 0:
            raise ConfigError(
                f"request_timeout_s must be positive: {self.request_timeout_s}"
            )
        if self.shutdown_timeout_s < 0:
            raise ConfigError(
                f"shutdown_timeout_s must not be negative: {self.shutdown_timeout_s}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "WatcherConfig":
        """
        Create a config, taking the log level from the environment.

        The FILEWATCHER_LOG_LEVEL variable is matched by name without regard
        to case; only the value "debug" changes the default level.
        """
        environ = os.environ if environ is None else environ
        config = cls(**overrides)
        for key, value in environ.items():
            if key.lower() == LOG_LEVEL_ENV and value == "debug":
                config.log_level = "DEBUG"
                break
        return config
