"""
Unified Configuration System.

Settings for the model adapter and the database session layer, loaded
from YAML files, environment variables, or built programmatically.

Usage:
    from scaffoldkit.core.config import get_config, load_config

    config = load_config("config/scaffoldkit.yaml")
    use_refs = config.adapter.use_references
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class AdapterSettings:
    """
    Model adapter settings.

    Attributes:
        use_references: Join eager-loaded associations so that conditions
            can reference their columns
        autocommit: Commit after each write; flush only when disabled
        default_order_by_primary_key: Order collections by primary key
            when no explicit order is given
    """
    use_references: bool = False
    autocommit: bool = True
    default_order_by_primary_key: bool = True

    def __post_init__(self) -> None:
        self.use_references = _to_bool(self.use_references)
        self.autocommit = _to_bool(self.autocommit)
        self.default_order_by_primary_key = _to_bool(self.default_order_by_primary_key)


@dataclass
class DatabaseSettings:
    """
    Database settings.

    Attributes:
        database_url: SQLAlchemy database URL
        echo_sql: Whether to echo SQL statements
    """
    database_url: str = "sqlite:///:memory:"
    echo_sql: bool = False

    def __post_init__(self) -> None:
        self.echo_sql = _to_bool(self.echo_sql)

    def resolve_database_url(self) -> str:
        """Resolve database URL from environment variable if needed."""
        if self.database_url.startswith("${") and self.database_url.endswith("}"):
            env_var = self.database_url[2:-1]
            return os.environ.get(env_var, self.database_url)
        return self.database_url


@dataclass
class LoggingSettings:
    level: str = "INFO"
    structured: bool = False

    def __post_init__(self) -> None:
        self.level = str(self.level).upper()
        self.structured = _to_bool(self.structured)


@dataclass
class ScaffoldConfig:
    """Complete scaffoldkit configuration."""
    adapter: AdapterSettings = field(default_factory=AdapterSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "adapter": {
                "use_references": self.adapter.use_references,
                "autocommit": self.adapter.autocommit,
                "default_order_by_primary_key": self.adapter.default_order_by_primary_key,
            },
            "database": {
                "database_url": self.database.database_url,
                "echo_sql": self.database.echo_sql,
            },
            "logging": {
                "level": self.logging.level,
                "structured": self.logging.structured,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScaffoldConfig":
        adapter_data = data.get("adapter") or {}
        database_data = data.get("database") or {}
        logging_data = data.get("logging") or {}

        return cls(
            adapter=AdapterSettings(**adapter_data),
            database=DatabaseSettings(**database_data),
            logging=LoggingSettings(**logging_data),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ScaffoldConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "SCAFFOLDKIT_",
) -> ScaffoldConfig:
    """
    Load configuration from file and environment.

    Args:
        config_path: Path to a YAML config file; missing files are ignored
        env_prefix: Environment variable prefix

    Returns:
        Loaded configuration
    """
    config_data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            if path.suffix in (".yaml", ".yml"):
                with open(path, "r", encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
            else:
                logger.warning(f"Unknown config format: {path.suffix}")

    _apply_env_overrides(config_data, env_prefix)

    return ScaffoldConfig.from_dict(config_data)


def _apply_env_overrides(config: dict[str, Any], prefix: str) -> None:
    """Apply environment variable overrides to config."""
    env_mappings = {
        f"{prefix}DATABASE_URL": ("database", "database_url"),
        f"{prefix}ECHO_SQL": ("database", "echo_sql"),
        f"{prefix}LOG_LEVEL": ("logging", "level"),
        f"{prefix}USE_REFERENCES": ("adapter", "use_references"),
        f"{prefix}AUTOCOMMIT": ("adapter", "autocommit"),
    }

    for env_var, config_path in env_mappings.items():
        value = os.environ.get(env_var)
        if value:
            section, key = config_path
            if not config.get(section):
                config[section] = {}
            config[section][key] = value


_global_config: ScaffoldConfig | None = None


def get_config() -> ScaffoldConfig:
    """Get the global configuration."""
    global _global_config
    if _global_config is None:
        config_path = os.environ.get("SCAFFOLDKIT_CONFIG", "config/scaffoldkit.yaml")
        _global_config = load_config(config_path)
    return _global_config


def set_config(config: ScaffoldConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    global _global_config
    _global_config = None
