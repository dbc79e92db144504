"""Centralized configuration for the submission portal.

Every literal the workflow depends on (gate trigger words, delays, admin
credentials, storage location) lives here with its default. Values can be
overridden from YAML and a couple of environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from subportal.utils.logging import LEVELS
from subportal.utils.result import ConfigError, Err, Ok, Result


@dataclass
class GateConfig:
    """Literals and timings for the entry gate."""

    master_pass: str = "RW0.01"  # compared case-sensitively
    lock_trigger: str = "cover"
    admin_trigger: str = "admin"
    lockout_seconds: int = 15
    login_latency: float = 1.0
    max_tracked_browsers: int = 1000  # gates and admissions kept per process


@dataclass
class SubmissionConfig:
    """Submission form timings."""

    submission_latency: float = 1.5
    success_display_seconds: float = 3.0


@dataclass
class AdminConfig:
    """Fixed admin credentials."""

    username: str = "admin"
    password: str = "admin123"
    login_latency: float = 1.0


@dataclass
class StorageConfig:
    """Where the key-value store lives."""

    backend: str = "file"  # 'file' or 'memory'
    data_file: Path = Path("./data/store.json")
    quota_bytes: Optional[int] = None  # memory backend only


@dataclass
class WebConfig:
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 8000
    gate_cookie: str = "gate_session"


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"
    format: str = "json"


@dataclass
class AppConfig:
    """Complete application configuration."""

    gate: GateConfig = field(default_factory=GateConfig)
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> Result["AppConfig", ConfigError]:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Result with loaded config or error
        """
        path = Path(path)

        if not path.exists():
            return Err(ConfigError(
                field="path",
                message=f"Configuration file not found: {path}",
            ))

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            return Err(ConfigError(
                field="yaml",
                message=f"Failed to parse YAML: {e}",
            ))
        except OSError as e:
            return Err(ConfigError(
                field="file",
                message=f"Failed to read config file: {e}",
            ))

        if not isinstance(data, dict):
            return Err(ConfigError(
                field="yaml",
                message="Top-level YAML value must be a mapping",
            ))

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result["AppConfig", ConfigError]:
        """
        Create configuration from a dictionary.

        Missing keys fall back to defaults.

        Args:
            data: Configuration dictionary

        Returns:
            Result with loaded config or error
        """
        try:
            gate_data = data.get("gate", {})
            gate = GateConfig(
                master_pass=str(gate_data.get("master_pass", "RW0.01")),
                lock_trigger=str(gate_data.get("lock_trigger", "cover")),
                admin_trigger=str(gate_data.get("admin_trigger", "admin")),
                lockout_seconds=int(gate_data.get("lockout_seconds", 15)),
                login_latency=float(gate_data.get("login_latency", 1.0)),
                max_tracked_browsers=int(gate_data.get("max_tracked_browsers", 1000)),
            )

            submission_data = data.get("submission", {})
            submission = SubmissionConfig(
                submission_latency=float(submission_data.get("submission_latency", 1.5)),
                success_display_seconds=float(
                    submission_data.get("success_display_seconds", 3.0)
                ),
            )

            admin_data = data.get("admin", {})
            admin = AdminConfig(
                username=str(admin_data.get("username", "admin")),
                password=str(admin_data.get("password", "admin123")),
                login_latency=float(admin_data.get("login_latency", 1.0)),
            )

            storage_data = data.get("storage", {})
            quota = storage_data.get("quota_bytes")
            storage = StorageConfig(
                backend=str(storage_data.get("backend", "file")),
                data_file=Path(storage_data.get("data_file", "./data/store.json")),
                quota_bytes=int(quota) if quota is not None else None,
            )

            web_data = data.get("web", {})
            web = WebConfig(
                host=str(web_data.get("host", "127.0.0.1")),
                port=int(web_data.get("port", 8000)),
                gate_cookie=str(web_data.get("gate_cookie", "gate_session")),
            )

            logging_data = data.get("logging", {})
            logging_config = LoggingConfig(
                level=logging_data.get("level", "info"),
                format=logging_data.get("format", "json"),
            )

        except (TypeError, ValueError, AttributeError) as e:
            return Err(ConfigError(
                field="unknown",
                message=f"Failed to parse configuration: {e}",
            ))

        return Ok(cls(
            gate=gate,
            submission=submission,
            admin=admin,
            storage=storage,
            web=web,
            logging=logging_config,
        ))

    def validate(self) -> Result[None, ConfigError]:
        """
        Validate configuration values.

        Returns:
            Result indicating success or validation error
        """
        for name, value in [
            ("gate.master_pass", self.gate.master_pass),
            ("gate.lock_trigger", self.gate.lock_trigger),
            ("gate.admin_trigger", self.gate.admin_trigger),
        ]:
            if not value:
                return Err(ConfigError(field=name, message="Must not be empty"))

        triggers = {
            self.gate.master_pass.lower(),
            self.gate.lock_trigger.lower(),
            self.gate.admin_trigger.lower(),
        }
        if len(triggers) != 3:
            return Err(ConfigError(
                field="gate",
                message="master_pass, lock_trigger and admin_trigger must differ",
            ))

        if self.gate.lockout_seconds < 1:
            return Err(ConfigError(
                field="gate.lockout_seconds",
                message=f"Must be at least 1, got {self.gate.lockout_seconds}",
            ))

        if self.gate.max_tracked_browsers < 1:
            return Err(ConfigError(
                field="gate.max_tracked_browsers",
                message=f"Must be at least 1, got {self.gate.max_tracked_browsers}",
            ))

        for name, value in [
            ("gate.login_latency", self.gate.login_latency),
            ("submission.submission_latency", self.submission.submission_latency),
            ("submission.success_display_seconds", self.submission.success_display_seconds),
            ("admin.login_latency", self.admin.login_latency),
        ]:
            if value < 0:
                return Err(ConfigError(
                    field=name,
                    message=f"Must not be negative, got {value}",
                ))

        if self.storage.backend not in ("file", "memory"):
            return Err(ConfigError(
                field="storage.backend",
                message=f"Must be 'file' or 'memory', got {self.storage.backend!r}",
            ))

        if not 0 < self.web.port < 65536:
            return Err(ConfigError(
                field="web.port",
                message=f"Must be a valid TCP port, got {self.web.port}",
            ))

        if str(self.logging.level).lower() not in LEVELS:
            return Err(ConfigError(
                field="logging.level",
                message=f"Must be one of {', '.join(LEVELS)}, got {self.logging.level!r}",
            ))

        if self.logging.format not in ("json", "text"):
            return Err(ConfigError(
                field="logging.format",
                message=f"Must be 'json' or 'text', got {self.logging.format!r}",
            ))

        return Ok(None)

    def with_data_file(self, data_file: Path) -> "AppConfig":
        """Return a new config pointing the file store at data_file."""
        return replace(self, storage=replace(self.storage, data_file=Path(data_file)))


def load_config(config_dir: Path = None) -> Result[AppConfig, ConfigError]:
    """
    Load configuration from the standard location.

    Reads config/defaults.yaml when present, then applies environment
    overrides and validates the result.

    Args:
        config_dir: Configuration directory (defaults to ./config)

    Returns:
        Result with loaded config or error
    """
    if config_dir is None:
        config_dir = Path("./config")

    defaults_path = Path(config_dir) / "defaults.yaml"
    if defaults_path.exists():
        result = AppConfig.from_yaml(defaults_path)
        if result.is_err():
            return result
        config = result.unwrap()
    else:
        config = AppConfig()

    data_file = get_env_data_file()
    if data_file:
        config = config.with_data_file(Path(data_file))

    admin_password = get_env_admin_password()
    if admin_password:
        config.admin = replace(config.admin, password=admin_password)

    validation_result = config.validate()
    if validation_result.is_err():
        return Err(validation_result.unwrap_err())

    return Ok(config)


def get_env_data_file() -> Optional[str]:
    """Get the data file override from environment."""
    return os.environ.get("SUBPORTAL_DATA_FILE")


def get_env_admin_password() -> Optional[str]:
    """Get the admin password override from environment."""
    return os.environ.get("SUBPORTAL_ADMIN_PASSWORD")
