"""
Infrastructure Database Module.

Provides engine creation and session management.
"""

from .database import (
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
