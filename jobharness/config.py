"""
Configuration management for jobharness.

Loads and validates config.yaml from the jobharness home directory:

    $JOBHARNESS_HOME/config.yaml      (default: ~/.config/jobharness)

Example:
    definitions_dir: ~/batch/jobs
    unique_key: timestamp
    eager_index: false
    log_level: INFO
    log_format: pretty        # or "structured" (JSON lines)
    log_file: ~/batch/logs/jobharness.log
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from jobharness.errors import JobHarnessError


LOG_FORMATS = ("pretty", "structured")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(JobHarnessError):
    """Configuration validation error."""
    pass


def get_jobharness_home() -> Path:
    """Home directory for jobharness configuration."""
    home = os.environ.get("JOBHARNESS_HOME")
    if home:
        return Path(home)
    return Path("~/.config/jobharness").expanduser()


@dataclass
class HarnessConfig:
    """
    Effective jobharness configuration.

    Attributes:
        definitions_dir: Directory searched for job definition files
        unique_key: Parameter key used for generated unique parameters
        eager_index: Build step indexes when a runner is created
        log_level: Logging level name
        log_format: "pretty" (rich console) or "structured" (JSON)
        log_file: Optional log file path
    """
    definitions_dir: str = "jobs"
    unique_key: str = "timestamp"
    eager_index: bool = False
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None

    def __post_init__(self):
        self.log_level = str(self.log_level).upper()

    @property
    def definitions_path(self) -> Path:
        return Path(self.definitions_dir).expanduser()

    @property
    def log_file_path(self) -> Optional[Path]:
        if not self.log_file:
            return None
        return Path(self.log_file).expanduser()

    def validate(self) -> None:
        """Validate configuration values."""
        for name in ("definitions_dir", "unique_key"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ConfigError(f"{name} must be a non-empty string, got {value!r}")
        if self.log_file is not None and not isinstance(self.log_file, str):
            raise ConfigError(f"log_file must be a path string, got {self.log_file!r}")
        if not isinstance(self.eager_index, bool):
            raise ConfigError(f"eager_index must be true or false, got {self.eager_index!r}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level '{self.log_level}' (valid: {', '.join(LOG_LEVELS)})")
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"Invalid log_format '{self.log_format}' (valid: {', '.join(LOG_FORMATS)})")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HarnessConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {unknown}")
        config = cls(**data)
        config.validate()
        return config

    def __repr__(self) -> str:
        return (
            f"HarnessConfig(definitions_dir={self.definitions_dir}, "
            f"unique_key={self.unique_key}, log_level={self.log_level})"
        )


def load_config(config_path: Optional[Path] = None) -> HarnessConfig:
    """
    Load jobharness configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml

    Returns:
        HarnessConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the config is invalid
    """
    if config_path is None:
        config_path = get_jobharness_home() / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"jobharness config.yaml not found at {config_path}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")

    return HarnessConfig.from_dict(data)
