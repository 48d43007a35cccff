"""
SQLAlchemy reflection.

Reads mapper metadata (columns, relationships, association proxies) and
turns it into ColumnInfo / AssociationInfo records. Cardinality is
resolved here, once per model, from the relationship direction.

Relationship ``info`` keys understood:
- ``"polymorphic": True`` marks a belongs-to whose target is chosen by
  a stored type discriminator
- ``"as": "<name>"`` marks a has-many/has-one whose rows carry
  ``<name>_id`` and ``<name>_type``
- ``"through": "<association>"`` marks a relationship reached through
  another association
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Column, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.ext.associationproxy import AssociationProxyExtensionType
from sqlalchemy.orm import Mapper, RelationshipDirection, RelationshipProperty, configure_mappers
from sqlalchemy.orm.exc import UnmappedColumnError

from scaffoldkit.core.exceptions import ConfigurationError
from scaffoldkit.metadata.base import (
    AssociationInfo,
    AssociationKind,
    AssociationMacro,
    ColumnInfo,
    ModelMetadata,
)

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMNS = frozenset({"created_at", "updated_at"})
COUNTER_SUFFIX = "_count"


def get_mapper(model: type) -> Mapper:
    """Return the mapper for a mapped class, configuring mappers if needed."""
    try:
        mapper = inspect(model)
    except NoInspectionAvailable as e:
        raise ConfigurationError(
            f"{getattr(model, '__name__', model)!r} is not a mapped class",
            config_key="model",
        ) from e
    if not isinstance(mapper, Mapper):
        raise ConfigurationError(f"{model!r} is not a mapped class", config_key="model")
    configure_mappers()
    return mapper


def _type_name(column: Column) -> str:
    return str(getattr(column.type, "__visit_name__", type(column.type).__name__)).lower()


def _python_type(column: Column) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def _attribute_key(mapper: Mapper, column: Any) -> str:
    try:
        return mapper.get_property_by_column(column).key
    except UnmappedColumnError:
        return column.key


def reflect_columns(model: type) -> list[ColumnInfo]:
    mapper = get_mapper(model)
    discriminator = mapper.polymorphic_on
    discriminator_name = getattr(discriminator, "name", None)

    columns: list[ColumnInfo] = []
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if not isinstance(column, Column):
            continue
        name = prop.key
        columns.append(
            ColumnInfo(
                name=name,
                type_name=_type_name(column),
                python_type=_python_type(column),
                primary=bool(column.primary_key),
                is_timestamp=name in TIMESTAMP_COLUMNS,
                is_counter=name.endswith(COUNTER_SUFFIX),
                is_discriminator=discriminator is not None
                and (column is discriminator or column.name == discriminator_name),
            )
        )
    return columns


def _relationship_macro(prop: RelationshipProperty) -> AssociationMacro:
    if prop.direction is RelationshipDirection.MANYTOONE:
        return AssociationMacro.BELONGS_TO
    if prop.direction is RelationshipDirection.MANYTOMANY:
        return AssociationMacro.MANY_TO_MANY
    if not prop.uselist:
        return AssociationMacro.HAS_ONE
    return AssociationMacro.HAS_MANY


def _reflect_relationship(mapper: Mapper, prop: RelationshipProperty) -> AssociationInfo:
    macro = _relationship_macro(prop)
    target_mapper = prop.mapper
    info = prop.info or {}

    foreign_key = None
    association_foreign_key = None
    join_table = None

    if prop.synchronize_pairs:
        fk_column = prop.synchronize_pairs[0][1]
        if macro is AssociationMacro.BELONGS_TO:
            foreign_key = _attribute_key(mapper, fk_column)
        elif macro is AssociationMacro.MANY_TO_MANY:
            foreign_key = fk_column.key
        else:
            foreign_key = _attribute_key(target_mapper, fk_column)

    if macro is AssociationMacro.MANY_TO_MANY and prop.secondary is not None:
        join_table = getattr(prop.secondary, "name", None)
        if prop.secondary_synchronize_pairs:
            association_foreign_key = prop.secondary_synchronize_pairs[0][1].key

    return AssociationInfo(
        name=prop.key,
        macro=macro,
        kind=macro.kind,
        target=target_mapper.class_,
        foreign_key=foreign_key,
        association_foreign_key=association_foreign_key,
        join_table=join_table,
        polymorphic=bool(info.get("polymorphic", False)),
        as_=info.get("as"),
        through=info.get("through"),
    )


def _reflect_proxy(mapper: Mapper, name: str, proxy: Any) -> AssociationInfo:
    through = proxy.target_collection
    kind = AssociationKind.PLURAL_OWNED
    target = None

    intermediate = mapper.relationships.get(through)
    if intermediate is not None:
        if not intermediate.uselist:
            kind = AssociationKind.SINGULAR
        value_prop = intermediate.mapper.relationships.get(proxy.value_attr)
        if value_prop is not None:
            target = value_prop.mapper.class_

    return AssociationInfo(
        name=name,
        macro=AssociationMacro.THROUGH,
        kind=kind,
        target=target,
        through=through,
    )


def reflect_associations(model: type) -> list[AssociationInfo]:
    mapper = get_mapper(model)
    associations = [_reflect_relationship(mapper, prop) for prop in mapper.relationships]

    for name, descriptor in mapper.all_orm_descriptors.items():
        if getattr(descriptor, "extension_type", None) is AssociationProxyExtensionType.ASSOCIATION_PROXY:
            associations.append(_reflect_proxy(mapper, name, descriptor))

    return associations


def default_fields(
    columns: list[ColumnInfo] | tuple[ColumnInfo, ...],
    associations: list[AssociationInfo] | tuple[AssociationInfo, ...],
) -> list[str]:
    """
    Fields shown on scaffolded forms.

    All columns except the primary key, timestamps, counters and the
    inheritance discriminator. Each plain belongs-to association replaces
    its foreign key column.
    """
    fields = [c.name for c in columns if not c.hidden]
    for association in associations:
        if association.macro is not AssociationMacro.BELONGS_TO:
            continue
        if association.polymorphic or association.indirect:
            continue
        if association.foreign_key in fields:
            fields.remove(association.foreign_key)
        fields.append(association.name)
    return sorted(set(fields))


def default_association_names(
    associations: list[AssociationInfo] | tuple[AssociationInfo, ...],
) -> list[str]:
    return sorted(a.name for a in associations if a.listed)


def build_metadata(
    model: type,
    fields: list[str] | None = None,
    associations: list[str] | None = None,
    use_references: bool | None = None,
) -> ModelMetadata:
    """Reflect a mapped class into ModelMetadata, honouring explicit overrides."""
    mapper = get_mapper(model)
    columns = reflect_columns(model)
    reflected = reflect_associations(model)

    primary_columns = mapper.primary_key
    if len(primary_columns) > 1:
        logger.warning(f"{model.__name__} has a composite primary key; using the first column")

    field_names = list(fields) if fields is not None else default_fields(columns, reflected)
    association_names = (
        list(associations) if associations is not None else default_association_names(reflected)
    )

    metadata = ModelMetadata(
        model=model,
        name=model.__name__,
        table_name=mapper.local_table.name,
        primary_key=_attribute_key(mapper, primary_columns[0]),
        columns=tuple(columns),
        associations=tuple(reflected),
        fields=tuple(field_names),
        association_names=tuple(association_names),
        use_references=use_references,
        fields_overridden=fields is not None,
        associations_overridden=associations is not None,
    )
    logger.debug(
        f"Reflected {metadata.name}: {len(columns)} columns, "
        f"{len(reflected)} associations, fields={list(metadata.fields)}"
    )
    return metadata
