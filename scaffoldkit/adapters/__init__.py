"""Model adapters binding the scaffolding layer to an ORM."""

from scaffoldkit.adapters.base import ModelAdapter
from scaffoldkit.adapters.factory import get_adapter
from scaffoldkit.adapters.query import QueryOptions, build_select, condition_clauses
from scaffoldkit.adapters.sqlalchemy_adapter import SQLAlchemyModelAdapter, SharedAssociationOptions

__all__ = [
    "ModelAdapter",
    "get_adapter",
    "QueryOptions",
    "build_select",
    "condition_clauses",
    "SQLAlchemyModelAdapter",
    "SharedAssociationOptions",
]
