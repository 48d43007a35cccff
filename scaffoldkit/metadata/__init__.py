"""
Model metadata for scaffolding.

Reflects SQLAlchemy mapped classes into immutable per-model metadata
and keeps it in a process-wide registry.
"""

from .base import (
    AssociationInfo,
    AssociationKind,
    AssociationMacro,
    ColumnInfo,
    ModelMetadata,
)
from .reflection import (
    build_metadata,
    default_association_names,
    default_fields,
    get_mapper,
    reflect_associations,
    reflect_columns,
)
from .registry import ModelRegistry, scaffold_model

__all__ = [
    "AssociationInfo",
    "AssociationKind",
    "AssociationMacro",
    "ColumnInfo",
    "ModelMetadata",
    "build_metadata",
    "default_association_names",
    "default_fields",
    "get_mapper",
    "reflect_associations",
    "reflect_columns",
    "ModelRegistry",
    "scaffold_model",
]
