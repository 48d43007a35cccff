"""
Exception hierarchy for scaffoldkit.

Every error raised by the adapter layer derives from ScaffoldError.
RecordNotFoundError additionally derives from SQLAlchemy's own
NoResultFound, so handlers written against either type catch it.
Other ORM errors (integrity, connection) propagate untouched.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy.exc import NoResultFound


class ErrorCategory(str, Enum):
    """Error categories."""
    NOT_FOUND = "not_found"
    ASSOCIATION = "association"
    CONFIGURATION = "configuration"
    ADAPTER = "adapter"
    INTERNAL = "internal"


class ScaffoldError(Exception):
    """Base exception for scaffoldkit errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class RecordNotFoundError(ScaffoldError, NoResultFound):
    """No row matches the requested primary key."""

    def __init__(
        self,
        message: str,
        model: str | None = None,
        record_id: Any = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if model:
            details["model"] = model
        if record_id is not None:
            details["record_id"] = str(record_id)

        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            details=details,
        )


class AssociationError(ScaffoldError):
    """Unknown association, or an operation its cardinality does not allow."""

    def __init__(
        self,
        message: str,
        model: str | None = None,
        association: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if model:
            details["model"] = model
        if association:
            details["association"] = association

        super().__init__(
            message=message,
            category=ErrorCategory.ASSOCIATION,
            details=details,
        )


class ConfigurationError(ScaffoldError):
    """Configuration errors."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            details=details,
        )


class AdapterError(ScaffoldError):
    """Requested adapter is not available."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.ADAPTER,
            details=kwargs.pop("details", None),
        )
