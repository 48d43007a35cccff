"""
Collection query options.

Translates the framework's option hash (eager loads, order, limit,
offset, conditions) into an SQLAlchemy ``Select``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Select, and_, select, text
from sqlalchemy.orm import contains_eager, selectinload
from sqlalchemy.sql.elements import ClauseElement, ColumnElement

from scaffoldkit.core.exceptions import AssociationError
from scaffoldkit.metadata.reflection import get_mapper

logger = logging.getLogger(__name__)

ORDER_DIRECTIONS = {"asc": False, "desc": True}


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class QueryOptions(BaseModel):
    """
    Options for fetching a collection of records.

    Attributes:
        include: Associations to eager load
        order: Order specs: ``"name"``, ``"name desc"``, ``"-name"`` or
            SQL expressions
        limit: Maximum number of rows
        offset: Number of rows to skip
        conditions: Literal clause with params, or fragments ANDed together
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    include: list[str] = Field(default_factory=list)
    order: list[Any] = Field(default_factory=list)
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)
    conditions: list[Any] = Field(default_factory=list)

    @field_validator("include", "order", "conditions", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> list[Any]:
        return _as_list(value)

    @classmethod
    def coerce(cls, options: "QueryOptions | Mapping[str, Any] | None") -> "QueryOptions":
        if options is None:
            return cls()
        if isinstance(options, QueryOptions):
            return options
        return cls.model_validate(dict(options))


def _column_attribute(model: type, name: str) -> Any:
    mapper = get_mapper(model)
    if name not in mapper.column_attrs:
        raise ValueError(f"{model.__name__} has no column {name!r}")
    return getattr(model, name)


def _relationship_attribute(model: type, name: str) -> Any:
    mapper = get_mapper(model)
    if name not in mapper.relationships:
        raise AssociationError(
            f"{model.__name__} has no association {name!r}",
            model=model.__name__,
            association=name,
        )
    return getattr(model, name)


def literal_clause(clause: str, *params: Mapping[str, Any]) -> ClauseElement:
    """Build a textual clause, binding named parameters (``:name``)."""
    statement = text(clause)
    bound: dict[str, Any] = {}
    for group in params:
        if group is None:
            continue
        if not isinstance(group, Mapping):
            raise ValueError(f"Bound parameters must be a mapping, got {type(group).__name__}")
        bound.update(group)
    if bound:
        statement = statement.bindparams(**bound)
    return statement


def _mapping_clauses(model: type, mapping: Mapping[str, Any]) -> list[ColumnElement]:
    mapper = get_mapper(model)
    clauses: list[ColumnElement] = []
    for key, value in mapping.items():
        if isinstance(value, Mapping) and key in mapper.relationships:
            clauses.extend(_mapping_clauses(mapper.relationships[key].mapper.class_, value))
            continue
        attribute = _column_attribute(model, key)
        if value is None:
            clauses.append(attribute.is_(None))
        elif isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(attribute.in_(list(value)))
        else:
            clauses.append(attribute == value)
    return clauses


def _fragment_clauses(model: type, fragment: Any) -> list[Any]:
    if isinstance(fragment, Mapping):
        return _mapping_clauses(model, fragment)
    if isinstance(fragment, str):
        return [literal_clause(fragment)]
    if isinstance(fragment, (list, tuple)):
        if not fragment or not isinstance(fragment[0], str):
            raise ValueError("Condition sequences must start with a clause string")
        return [literal_clause(fragment[0], *fragment[1:])]
    if isinstance(fragment, ClauseElement):
        return [fragment]
    if callable(fragment):
        result = fragment(model)
        return [] if result is None else [result]
    raise ValueError(f"Unsupported condition: {fragment!r}")


def condition_clauses(model: type, conditions: list[Any] | None) -> list[Any]:
    """
    Expand conditions into WHERE clauses.

    A sequence starting with a string is a single clause followed by its
    bound parameters. Any other sequence is a list of independent
    fragments; ``None`` fragments are skipped.
    """
    if not conditions:
        return []
    if isinstance(conditions[0], str):
        return [literal_clause(conditions[0], *conditions[1:])]

    clauses: list[Any] = []
    for fragment in conditions:
        if fragment is None:
            continue
        clauses.extend(_fragment_clauses(model, fragment))
    return clauses


def order_clause(model: type, spec: Any) -> Any:
    if not isinstance(spec, str):
        return spec

    raw = spec.strip()
    descending = raw.startswith("-")
    parts = raw.lstrip("-").split()
    if len(parts) == 2 and parts[1].lower() in ORDER_DIRECTIONS:
        descending = ORDER_DIRECTIONS[parts[1].lower()]
    elif len(parts) != 1:
        return text(spec)

    name = parts[0]
    if name not in get_mapper(model).column_attrs:
        return text(spec)
    attribute = getattr(model, name)
    return attribute.desc() if descending else attribute.asc()


def build_select(
    model: type,
    options: QueryOptions,
    use_references: bool = False,
    default_order: list[Any] | None = None,
) -> Select:
    """
    Compose a Select for ``model`` from query options.

    With references on, included associations are joined. Limit and offset
    then apply to a subquery of distinct parent keys, so they count parent
    rows and eager-loaded collections stay complete.
    """
    stmt = select(model)
    joins: list[Any] = []

    for name in options.include:
        attribute = _relationship_attribute(model, name)
        if use_references:
            joins.append(attribute)
            stmt = stmt.outerjoin(attribute).options(contains_eager(attribute))
        else:
            stmt = stmt.options(selectinload(attribute))

    order = [order_clause(model, spec) for spec in options.order] or list(default_order or [])
    clauses = condition_clauses(model, options.conditions)
    paginated = options.limit is not None or options.offset is not None

    if joins and paginated:
        key = get_mapper(model).primary_key[0]
        keys = select(key).select_from(model)
        for attribute in joins:
            keys = keys.outerjoin(attribute)
        if clauses:
            keys = keys.where(and_(*clauses))
        keys = keys.group_by(key)
        if order:
            keys = keys.order_by(*order)
        if options.limit is not None:
            keys = keys.limit(options.limit)
        if options.offset is not None:
            keys = keys.offset(options.offset)
        page = keys.subquery()
        stmt = stmt.where(key.in_(select(page.c[0])))
    else:
        if options.limit is not None:
            stmt = stmt.limit(options.limit)
        if options.offset is not None:
            stmt = stmt.offset(options.offset)

    if order:
        stmt = stmt.order_by(*order)
    if clauses:
        stmt = stmt.where(and_(*clauses))

    logger.debug(f"Built select for {model.__name__}: {len(clauses)} conditions, include={options.include}")
    return stmt
