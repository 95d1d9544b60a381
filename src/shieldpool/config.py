"""
Ledger configuration.

Defaults match the deployed parameters; a host overrides them from a dict or
a JSON file.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .crypto.merkle import DEFAULT_TREE_DEPTH
from .crypto.zkp.core import ZKPConfig
from .errors import ConfigurationError
from .logging import LogConfig, LogLevel
from .sharding import DEFAULT_ROOT_HISTORY
from .storage import DatabaseConfig

MAX_TREE_DEPTH = 32


@dataclass
class LedgerConfig:
    """Configuration of a ShieldedLedger."""

    # Accumulator
    tree_depth: int = DEFAULT_TREE_DEPTH
    root_history_size: int = DEFAULT_ROOT_HISTORY

    # Verifier
    verification_cache_size: int = 8
    enable_subgroup_checks: bool = True

    # Most recent events kept until the host drains them
    event_log_size: int = 1024

    # Persistence; None keeps state in memory only
    database_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not 0 < self.tree_depth <= MAX_TREE_DEPTH:
            raise ConfigurationError(
                f"tree_depth must be in 1..{MAX_TREE_DEPTH}",
                config_key="tree_depth",
                config_value=self.tree_depth,
            )
        if self.root_history_size <= 0:
            raise ConfigurationError(
                "root_history_size must be positive",
                config_key="root_history_size",
                config_value=self.root_history_size,
            )
        if self.verification_cache_size <= 0:
            raise ConfigurationError(
                "verification_cache_size must be positive",
                config_key="verification_cache_size",
                config_value=self.verification_cache_size,
            )
        if self.event_log_size <= 0:
            raise ConfigurationError(
                "event_log_size must be positive",
                config_key="event_log_size",
                config_value=self.event_log_size,
            )
        try:
            LogLevel.parse(self.log_level)
        except ValueError as e:
            raise ConfigurationError(
                str(e), config_key="log_level", config_value=self.log_level
            ) from e
        if self.log_format not in ("json", "text"):
            raise ConfigurationError(
                "log_format must be 'json' or 'text'",
                config_key="log_format",
                config_value=self.log_format,
            )

    def zkp_config(self) -> ZKPConfig:
        return ZKPConfig(
            cache_size=self.verification_cache_size,
            enable_subgroup_checks=self.enable_subgroup_checks,
        )

    def database_config(self) -> Optional[DatabaseConfig]:
        if self.database_path is None:
            return None
        return DatabaseConfig(database_path=self.database_path)

    def log_config(self) -> LogConfig:
        return LogConfig(level=LogLevel.parse(self.log_level), format_type=self.log_format)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tree_depth": self.tree_depth,
            "root_history_size": self.root_history_size,
            "verification_cache_size": self.verification_cache_size,
            "enable_subgroup_checks": self.enable_subgroup_checks,
            "event_log_size": self.event_log_size,
            "database_path": self.database_path,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        """Create from dictionary; unknown keys are rejected."""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}"
            )
        config = cls(**data)
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "LedgerConfig":
        """Load a JSON configuration file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration {path}: {e}", cause=e) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration {path} must be a JSON object")
        return cls.from_dict(data)
