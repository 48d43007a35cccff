"""
scaffoldkit - SQLAlchemy model adapter for CRUD scaffolding.

Exposes mapped classes to a generic scaffolding framework: field and
association listings, record lookup and collection queries, association
editing, persistence and record merging.
"""

from scaffoldkit.adapters import (
    ModelAdapter,
    QueryOptions,
    SQLAlchemyModelAdapter,
    get_adapter,
)
from scaffoldkit.core.exceptions import (
    AssociationError,
    RecordNotFoundError,
    ScaffoldError,
)
from scaffoldkit.metadata import AssociationKind, ModelRegistry, scaffold_model

__version__ = "0.1.0"

__all__ = [
    "ModelAdapter",
    "QueryOptions",
    "SQLAlchemyModelAdapter",
    "get_adapter",
    "AssociationError",
    "RecordNotFoundError",
    "ScaffoldError",
    "AssociationKind",
    "ModelRegistry",
    "scaffold_model",
]
