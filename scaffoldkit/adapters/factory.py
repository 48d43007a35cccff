from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from scaffoldkit.adapters.base import ModelAdapter
from scaffoldkit.adapters.sqlalchemy_adapter import SQLAlchemyModelAdapter
from scaffoldkit.core.exceptions import AdapterError, ConfigurationError


def get_adapter(orm: str = "sqlalchemy", session: Session | None = None, **kwargs: Any) -> ModelAdapter:
    name = (orm or "sqlalchemy").strip().lower()
    if name in {"sqlalchemy", "sqla"}:
        if session is None:
            raise ConfigurationError("A session is required for the sqlalchemy adapter", config_key="session")
        return SQLAlchemyModelAdapter(session, **kwargs)
    raise AdapterError(f"Unsupported orm: {orm}")
