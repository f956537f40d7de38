"""Storage adapter contract.

The property and association layers never talk to storage directly. They
go through the adapter registered for a repository, which must provide:

    field_naming_convention(name) -> str
        Storage field name for a property name ("postTitle" → "post_title").

    create(instance) -> None
        Persist a pending instance, filling in serial keys.

    update(instance, attributes) -> None
        Write changed properties of a persisted instance.

    delete(instance) -> None
        Remove a persisted instance.

    read_many(model, properties, conditions=None, keys=None) -> list[dict]
        Rows matching the equality ``conditions`` (property name → value)
        and, when given, restricted to the listed key tuples. Each row maps
        property name → loaded value for the requested properties.

    read_one(model, conditions) -> Model | None
        Zero-or-one instance matching the conditions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from patina.db.repository import DEFAULT_REPOSITORY_NAME
from patina.models.utils import underscore

if TYPE_CHECKING:
    from patina.models.base import Model
    from patina.models.property import PropertyDescriptor


class AbstractAdapter(ABC):
    """Base class for storage adapters."""

    def __init__(self, name: str = DEFAULT_REPOSITORY_NAME):
        self.name = name

    def field_naming_convention(self, name: str) -> str:
        return underscore(name)

    @abstractmethod
    def create(self, instance: Model) -> None: ...

    @abstractmethod
    def update(
        self, instance: Model, attributes: Mapping[PropertyDescriptor, Any]
    ) -> None: ...

    @abstractmethod
    def delete(self, instance: Model) -> None: ...

    @abstractmethod
    def read_many(
        self,
        model: type[Model],
        properties: Iterable[PropertyDescriptor],
        conditions: Mapping[str, Any] | None = None,
        keys: Sequence[tuple[Any, ...]] | None = None,
    ) -> list[dict[str, Any]]: ...

    def read_one(
        self, model: type[Model], conditions: Mapping[str, Any]
    ) -> Model | None:
        properties = model.properties(self.name).defaults()
        rows = self.read_many(model, properties, conditions)
        instances = model.load(rows, properties, repository_name=self.name)
        return instances[0] if instances else None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


__all__ = ["AbstractAdapter"]
