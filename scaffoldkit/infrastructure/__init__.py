"""
Infrastructure Module - Core infrastructure components.

Provides:
- database: Engine creation and session management
"""

from scaffoldkit.infrastructure.database import (
    Base,
    create_engine_from_settings,
    create_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    "Base",
    "create_engine_from_settings",
    "create_session_factory",
    "init_db",
    "session_scope",
]
