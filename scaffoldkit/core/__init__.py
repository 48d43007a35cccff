"""Core utilities for scaffoldkit."""

from scaffoldkit.core.config import (
    AdapterSettings,
    DatabaseSettings,
    LoggingSettings,
    ScaffoldConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)
from scaffoldkit.core.exceptions import (
    AdapterError,
    AssociationError,
    ConfigurationError,
    ErrorCategory,
    RecordNotFoundError,
    ScaffoldError,
)
from scaffoldkit.core.logging_config import (
    LogContext,
    get_log_level,
    get_logger,
    log_context,
    set_log_level,
    setup_logging,
)

__all__ = [
    "AdapterSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "ScaffoldConfig",
    "get_config",
    "load_config",
    "reset_config",
    "set_config",
    "AdapterError",
    "AssociationError",
    "ConfigurationError",
    "ErrorCategory",
    "RecordNotFoundError",
    "ScaffoldError",
    "LogContext",
    "get_log_level",
    "get_logger",
    "log_context",
    "set_log_level",
    "setup_logging",
]
