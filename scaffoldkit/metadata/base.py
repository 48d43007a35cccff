"""
Metadata base models.

Provides the dataclasses and enums describing a mapped model as the
scaffolding layer sees it: its columns, its associations and the
default field and association listings derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AssociationKind(str, Enum):
    """Cardinality of an association, named after the edit widget it gets."""
    SINGULAR = "one"
    PLURAL_OWNED = "new"
    PLURAL_SHARED = "edit"


class AssociationMacro(str, Enum):
    """Declared shape of an association."""
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    MANY_TO_MANY = "many_to_many"
    THROUGH = "through"

    @property
    def kind(self) -> AssociationKind:
        if self is AssociationMacro.HAS_MANY:
            return AssociationKind.PLURAL_OWNED
        if self is AssociationMacro.MANY_TO_MANY:
            return AssociationKind.PLURAL_SHARED
        return AssociationKind.SINGULAR


@dataclass(frozen=True)
class ColumnInfo:
    """A mapped table column."""
    name: str
    type_name: str
    python_type: type | None = None
    primary: bool = False
    is_timestamp: bool = False
    is_counter: bool = False
    is_discriminator: bool = False

    @property
    def hidden(self) -> bool:
        """Whether the column is left out of the default field listing."""
        return self.primary or self.is_timestamp or self.is_counter or self.is_discriminator

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type_name,
            "primary": self.primary,
            "timestamp": self.is_timestamp,
            "counter": self.is_counter,
            "discriminator": self.is_discriminator,
        }


@dataclass(frozen=True)
class AssociationInfo:
    """
    A reflected association.

    Attributes:
        name: Attribute name on the owning model
        macro: Declared shape
        kind: Cardinality, resolved once from the macro
        target: Associated mapped class (None when it cannot be resolved)
        foreign_key: Column holding the owner's key; on the owner table for
            belongs-to, on the related or join table otherwise
        association_foreign_key: Join table column holding the target's key
        join_table: Join table name for many-to-many associations
        polymorphic: Target is chosen by a stored type discriminator
        as_: Polymorphic interface name; rows carry ``<as_>_type``
        through: Association this one is reached through
    """
    name: str
    macro: AssociationMacro
    kind: AssociationKind
    target: type | None = None
    foreign_key: str | None = None
    association_foreign_key: str | None = None
    join_table: str | None = None
    polymorphic: bool = False
    as_: str | None = None
    through: str | None = None

    @property
    def indirect(self) -> bool:
        return self.through is not None or self.macro is AssociationMacro.THROUGH

    @property
    def listed(self) -> bool:
        """Whether the association appears in the default listing."""
        return not (self.indirect or self.polymorphic)

    @property
    def discriminator_field(self) -> str | None:
        return f"{self.as_}_type" if self.as_ else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "macro": self.macro.value,
            "kind": self.kind.value,
            "target": self.target.__name__ if self.target is not None else None,
            "foreign_key": self.foreign_key,
            "association_foreign_key": self.association_foreign_key,
            "join_table": self.join_table,
            "polymorphic": self.polymorphic,
            "as": self.as_,
            "through": self.through,
        }


@dataclass(frozen=True)
class ModelMetadata:
    """
    Metadata for a registered model.

    Built once per model and treated as immutable afterwards. Overrides
    produce a new instance through ``dataclasses.replace``.
    """
    model: type
    name: str
    table_name: str
    primary_key: str
    columns: tuple[ColumnInfo, ...] = ()
    associations: tuple[AssociationInfo, ...] = ()
    fields: tuple[str, ...] = ()
    association_names: tuple[str, ...] = ()
    use_references: bool | None = None
    fields_overridden: bool = False
    associations_overridden: bool = False
    _columns_by_name: dict[str, ColumnInfo] = field(default_factory=dict, init=False, repr=False, compare=False)
    _associations_by_name: dict[str, AssociationInfo] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # frozen: populate lookup tables through object.__setattr__
        object.__setattr__(self, "_columns_by_name", {c.name: c for c in self.columns})
        object.__setattr__(self, "_associations_by_name", {a.name: a for a in self.associations})

    def column(self, name: str) -> ColumnInfo | None:
        return self._columns_by_name.get(name)

    def association(self, name: str) -> AssociationInfo | None:
        return self._associations_by_name.get(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "table_name": self.table_name,
            "primary_key": self.primary_key,
            "columns": [c.to_dict() for c in self.columns],
            "associations": [a.to_dict() for a in self.associations],
            "fields": list(self.fields),
            "association_names": list(self.association_names),
            "use_references": self.use_references,
            "fields_overridden": self.fields_overridden,
            "associations_overridden": self.associations_overridden,
        }
