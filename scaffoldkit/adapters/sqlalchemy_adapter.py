"""
SQLAlchemy model adapter.

Maps the scaffolding framework's model operations (lookup, listing,
association editing, persistence, record merging) onto a SQLAlchemy
``Session`` and the reflected metadata held by ModelRegistry.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, NamedTuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from scaffoldkit.adapters.base import ModelAdapter
from scaffoldkit.adapters.query import QueryOptions, build_select
from scaffoldkit.core.config import AdapterSettings, get_config
from scaffoldkit.core.exceptions import AssociationError, RecordNotFoundError
from scaffoldkit.core.logging_config import log_context
from scaffoldkit.metadata.base import (
    AssociationInfo,
    AssociationKind,
    AssociationMacro,
    ModelMetadata,
)
from scaffoldkit.metadata.reflection import get_mapper
from scaffoldkit.metadata.registry import ModelRegistry

logger = logging.getLogger(__name__)


class SharedAssociationOptions(NamedTuple):
    """Join table details of a many-to-many association."""
    associated_class: type
    foreign_key: str
    association_foreign_key: str
    join_table: str


class SQLAlchemyModelAdapter(ModelAdapter):
    """
    Model adapter backed by a SQLAlchemy session.

    The session is request-scoped and owned by the caller; the adapter
    commits (or only flushes, when ``autocommit`` is off) after writes.

    Usage:
        adapter = SQLAlchemyModelAdapter(session)

        post = adapter.get_object(Post, "5")
        adapter.fields(Post)          # ['author', 'body', 'title']
        adapter.get_objects(Post, {"conditions": [{"status": "active"}], "limit": 10})
    """

    orm = "sqlalchemy"
    error_raised = RecordNotFoundError

    def __init__(
        self,
        session: Session,
        registry: ModelRegistry | None = None,
        settings: AdapterSettings | None = None,
    ) -> None:
        self.session = session
        self.registry = registry or ModelRegistry.get_instance()
        self.settings = settings or get_config().adapter

    # ---- metadata ----

    def metadata(self, model: type) -> ModelMetadata:
        return self.registry.get_metadata(model)

    def primary_key(self, model: type) -> str:
        return self.metadata(model).primary_key

    def table_name(self, model: type) -> str:
        return self.metadata(model).table_name

    def table_column_type(self, model: type, column: str) -> str | None:
        """Type name of a table column, or None if it isn't one."""
        info = self.metadata(model).column(str(column))
        return info.type_name if info else None

    def fields(self, model: type) -> list[str]:
        return list(self.metadata(model).fields)

    def associations(self, model: type) -> list[str]:
        return list(self.metadata(model).association_names)

    def all_associations(self, model: type) -> list[AssociationInfo]:
        return list(self.metadata(model).associations)

    def association(self, model: type, association: str) -> AssociationInfo:
        metadata = self.metadata(model)
        info = metadata.association(str(association))
        if info is None:
            raise AssociationError(
                f"{metadata.name} has no association {association!r}",
                model=metadata.name,
                association=str(association),
            )
        return info

    def association_type(self, model: type, association: str) -> AssociationKind:
        return self.association(model, association).kind

    def associated_class(self, model: type, association: str) -> type:
        info = self.association(model, association)
        if info.target is None:
            raise AssociationError(
                f"Association {association!r} has no mapped target class",
                model=model.__name__,
                association=info.name,
            )
        return info.target

    def foreign_key(self, model: type, association: str) -> str | None:
        return self.association(model, association).foreign_key

    def shared_association_options(self, model: type, association: str) -> SharedAssociationOptions:
        info = self.association(model, association)
        if info.macro is not AssociationMacro.MANY_TO_MANY:
            raise AssociationError(
                f"Association {association!r} is not many-to-many",
                model=model.__name__,
                association=info.name,
            )
        return SharedAssociationOptions(
            associated_class=info.target,
            foreign_key=info.foreign_key,
            association_foreign_key=info.association_foreign_key,
            join_table=info.join_table,
        )

    def use_references(self, model: type) -> bool:
        """Whether eager loads also join, so conditions can reference them."""
        override = self.metadata(model).use_references
        return self.settings.use_references if override is None else override

    # ---- instances ----

    def attribute_value(self, instance: Any, field: str) -> Any:
        return getattr(instance, field)

    def get_id(self, instance: Any) -> Any:
        return getattr(instance, self.primary_key(type(instance)))

    def _coerce_id(self, metadata: ModelMetadata, record_id: Any) -> Any:
        if record_id is None:
            return None
        column = metadata.column(metadata.primary_key)
        python_type = column.python_type if column else None
        if python_type is None or isinstance(record_id, python_type):
            return record_id
        try:
            if python_type is int:
                return int(str(record_id).strip())
            return python_type(record_id)
        except (TypeError, ValueError):
            return None

    def get_object(self, model: type, record_id: Any) -> Any:
        """Fetch one record by primary key, coerced to the key's type."""
        metadata = self.metadata(model)
        key = self._coerce_id(metadata, record_id)
        instance = self.session.get(model, key) if key is not None else None
        if instance is None:
            raise RecordNotFoundError(
                f"Couldn't find {metadata.name} with {metadata.primary_key}={record_id!r}",
                model=metadata.name,
                record_id=record_id,
            )
        return instance

    def get_objects(
        self,
        model: type,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> list[Any]:
        query_options = QueryOptions.coerce(options)
        default_order = None
        if self.settings.default_order_by_primary_key:
            default_order = [getattr(model, self.primary_key(model))]

        stmt = build_select(
            model,
            query_options,
            use_references=self.use_references(model),
            default_order=default_order,
        )
        records = list(self.session.scalars(stmt).unique().all())
        logger.debug(f"Fetched {len(records)} {model.__name__} records")
        return records

    def _persist(self) -> None:
        try:
            if self.settings.autocommit:
                self.session.commit()
            else:
                self.session.flush()
        except Exception as e:
            logger.error(f"Write failed, rolling back: {e}")
            self.session.rollback()
            raise

    def save(self, instance: Any) -> bool:
        """
        Persist pending changes.

        Returns False, without touching the database, when the instance
        defines ``is_valid()`` and it reports failure.
        """
        validator = getattr(instance, "is_valid", None)
        if callable(validator) and not validator():
            logger.info(f"Validation failed for {type(instance).__name__}, not saved")
            return False

        self.session.add(instance)
        self._persist()
        logger.debug(f"Saved {type(instance).__name__} {self.get_id(instance)!r}")
        return True

    def destroy(self, instance: Any) -> None:
        record_id = self.get_id(instance)
        self.session.delete(instance)
        self._persist()
        logger.info(f"Destroyed {type(instance).__name__} {record_id!r}")

    # ---- associations ----

    def _collection(self, instance: Any, association: str) -> Any:
        info = self.association(type(instance), association)
        if info.kind is AssociationKind.SINGULAR or info.indirect:
            raise AssociationError(
                f"Association {association!r} is not an editable collection",
                model=type(instance).__name__,
                association=info.name,
            )
        return getattr(instance, info.name)

    def add_associated_object(self, instance: Any, association: str, associated: Any) -> None:
        """Add ``associated`` to the collection; no-op if already present."""
        info = self.association(type(instance), association)
        collection = self._collection(instance, association)
        if associated in collection:
            return
        if info.as_:
            # the type column is only a literal in the join condition
            setattr(associated, info.discriminator_field, self.metadata(type(instance)).name)
        collection.append(associated)
        self._persist()

    def remove_associated_object(self, instance: Any, association: str, associated: Any) -> None:
        collection = self._collection(instance, association)
        if associated not in collection:
            return
        collection.remove(associated)
        self._persist()

    def new_associated_object_values(self, model: type, association: str, record: Any) -> dict[str, Any]:
        """
        Values pre-filled on a new associated record.

        The foreign key points at ``record``; polymorphic-capable
        associations also set the type discriminator to the owner's name.
        """
        info = self.association(model, association)
        values = {info.foreign_key: self.get_id(record)}
        if info.as_:
            values[info.discriminator_field] = self.metadata(model).name
        return values

    def _reassign(self, model: type, info: AssociationInfo, from_id: Any, to_id: Any) -> int:
        if info.indirect:
            return 0

        if info.macro in (AssociationMacro.HAS_ONE, AssociationMacro.HAS_MANY):
            target_mapper = get_mapper(info.target)
            column = target_mapper.columns[info.foreign_key]
            stmt = update(column.table).where(column == from_id).values({column: to_id})
            if info.as_:
                discriminator = target_mapper.columns[info.discriminator_field]
                stmt = stmt.where(discriminator == self.metadata(model).name)
        elif info.macro is AssociationMacro.MANY_TO_MANY:
            join_table = get_mapper(model).relationships[info.name].secondary
            column = join_table.c[info.foreign_key]
            stmt = update(join_table).where(column == from_id).values({column: to_id})
        else:
            return 0

        result = self.session.execute(stmt)
        logger.info(
            f"Reassigned {result.rowcount} {column.table.name} rows "
            f"via {model.__name__}.{info.name}: {from_id!r} -> {to_id!r}"
        )
        return result.rowcount

    def reassign_association(self, model: type, association: str, from_id: Any, to_id: Any) -> int:
        """
        Move every row related through ``association`` from one owner to another.

        Issues a single parameterized UPDATE against the related table, or
        the join table for many-to-many associations. Indirect and
        belongs-to associations are skipped.

        Returns:
            Number of rows updated
        """
        info = self.association(model, association)
        self.session.flush()
        count = self._reassign(model, info, from_id, to_id)
        self._persist()
        self.session.expire_all()
        return count

    def merge_records(self, model: type, from_id: Any, to_id: Any) -> bool:
        """
        Merge one record into another.

        Reassigns all associated rows from ``from_id`` to ``to_id`` and
        destroys the ``from_id`` record, in one transaction.

        Returns:
            False if both ids refer to the same record
        """
        metadata = self.metadata(model)
        from_key = self._coerce_id(metadata, from_id)
        to_key = self._coerce_id(metadata, to_id)
        if from_key == to_key:
            return False

        source = self.get_object(model, from_key)
        self.get_object(model, to_key)

        with log_context(model=metadata.name, operation="merge"):
            try:
                self.session.flush()
                for info in metadata.associations:
                    self._reassign(model, info, from_key, to_key)
                # collections loaded before the UPDATEs would be nulled on delete
                self.session.expire_all()
                self.session.delete(source)
                self._persist()
            except Exception:
                self.session.rollback()
                raise
            logger.info(f"Merged {metadata.name} {from_key!r} into {to_key!r}")
        return True
