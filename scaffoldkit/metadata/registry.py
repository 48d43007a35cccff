"""
Model Registry - per-model scaffolding metadata.

Holds one ModelMetadata per mapped class. Metadata is reflected once,
either at registration or lazily on first access, and replaced only
through the explicit override API.
"""

import dataclasses
import logging
import threading
from typing import Any, Callable

from scaffoldkit.metadata.base import ModelMetadata
from scaffoldkit.metadata.reflection import build_metadata

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class ModelRegistry:
    """
    Central registry for scaffolded models.

    Thread-safe singleton. Lazy registration may race; reflection is
    deterministic, so the losing write stores an equal value.

    Usage:
        registry = ModelRegistry.get_instance()

        registry.register(Post, fields=["title", "body"])
        metadata = registry.get_metadata(Post)
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls) -> "ModelRegistry":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._models: dict[type, ModelMetadata] = {}

        self._initialized = True
        logger.debug("ModelRegistry initialized")

    @classmethod
    def get_instance(cls) -> "ModelRegistry":
        """Get the singleton instance."""
        return cls()

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock:
            cls._instance = None

    def register(
        self,
        model: type,
        fields: list[str] | None = None,
        associations: list[str] | None = None,
        use_references: bool | None = None,
    ) -> ModelMetadata:
        """
        Register a mapped class with the registry.

        Args:
            model: SQLAlchemy mapped class
            fields: Explicit field listing, used as given
            associations: Explicit association listing, used as given
            use_references: Per-model override of the references setting

        Returns:
            ModelMetadata for the registered model
        """
        if model in self._models:
            logger.warning(f"Model {model.__name__} already registered, updating")

        metadata = build_metadata(
            model,
            fields=fields,
            associations=associations,
            use_references=use_references,
        )
        self._models[model] = metadata

        logger.info(
            f"Registered model: {metadata.name} (table={metadata.table_name}, "
            f"fields={len(metadata.fields)}, associations={len(metadata.association_names)})"
        )
        return metadata

    def get_metadata(self, model: type) -> ModelMetadata:
        """Get metadata for a model, registering it on first access."""
        metadata = self._models.get(model)
        if metadata is None:
            metadata = self.register(model)
        return metadata

    def override(
        self,
        model: type,
        fields: list[str] | None = _UNSET,
        associations: list[str] | None = _UNSET,
        use_references: bool | None = _UNSET,
    ) -> ModelMetadata:
        """
        Replace parts of a model's metadata.

        Passing ``None`` for fields or associations restores the reflected
        default; omitting an argument leaves it untouched.
        """
        metadata = self.get_metadata(model)
        changes: dict[str, Any] = {}

        if fields is not _UNSET or associations is not _UNSET:
            if fields is _UNSET:
                fields = list(metadata.fields) if metadata.fields_overridden else None
            if associations is _UNSET:
                associations = list(metadata.association_names) if metadata.associations_overridden else None
            defaults = build_metadata(model, fields=fields, associations=associations)
            changes.update(
                fields=defaults.fields,
                association_names=defaults.association_names,
                fields_overridden=defaults.fields_overridden,
                associations_overridden=defaults.associations_overridden,
            )

        if use_references is not _UNSET:
            changes["use_references"] = use_references

        metadata = dataclasses.replace(metadata, **changes)
        self._models[model] = metadata
        logger.info(f"Overrode metadata for {metadata.name}: {sorted(changes)}")
        return metadata

    def unregister(self, model: type) -> bool:
        """Unregister a model."""
        if model not in self._models:
            return False
        del self._models[model]
        logger.info(f"Unregistered model: {model.__name__}")
        return True

    def has_model(self, model: type) -> bool:
        return model in self._models

    def list_models(self) -> list[ModelMetadata]:
        return sorted(self._models.values(), key=lambda m: m.name)

    def get_stats(self) -> dict[str, Any]:
        """Get registry statistics."""
        return {
            "total_models": len(self._models),
            "fields_overridden": sum(1 for m in self._models.values() if m.fields_overridden),
            "associations_overridden": sum(
                1 for m in self._models.values() if m.associations_overridden
            ),
            "associations": sum(len(m.associations) for m in self._models.values()),
        }


def scaffold_model(
    fields: list[str] | None = None,
    associations: list[str] | None = None,
    use_references: bool | None = None,
) -> Callable[[type], type]:
    """
    Decorator for registering a mapped class.

    Usage:
        @scaffold_model(fields=["title", "author"])
        class Post(Base):
            ...
    """
    def decorator(cls: type) -> type:
        ModelRegistry.get_instance().register(
            cls,
            fields=fields,
            associations=associations,
            use_references=use_references,
        )
        return cls

    return decorator
