from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from scaffoldkit.metadata.base import AssociationKind


class ModelAdapter(ABC):
    """Model capabilities the scaffolding framework relies on."""

    orm: str = "unknown"

    @abstractmethod
    def attribute_value(self, instance: Any, field: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    def get_id(self, instance: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    def associations(self, model: type) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def association_type(self, model: type, association: str) -> AssociationKind:
        raise NotImplementedError

    @abstractmethod
    def associated_class(self, model: type, association: str) -> type:
        raise NotImplementedError

    @abstractmethod
    def add_associated_object(self, instance: Any, association: str, associated: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_associated_object(self, instance: Any, association: str, associated: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def fields(self, model: type) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def get_object(self, model: type, record_id: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    def get_objects(self, model: type, options: Mapping[str, Any] | None = None) -> list[Any]:
        raise NotImplementedError

    @abstractmethod
    def save(self, instance: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def destroy(self, instance: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def new_associated_object_values(self, model: type, association: str, record: Any) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def reassign_association(self, model: type, association: str, from_id: Any, to_id: Any) -> int:
        raise NotImplementedError
