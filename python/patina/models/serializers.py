"""Serialization utilities for models and storage payloads.

Serializable:
    Mixin implementing the property serialization hook. Every property
    declared on a Serializable model is recorded, and to_dict() /
    to_msgpack() dump the recorded properties.

    class Post(Serializable, Model):
        id: int = Field(serial=True)
        title: str

    Post(title="Hi").to_dict()   →  {"id": None, "title": "Hi"}

Functions:
    _dump_insert_data(instance, repository_name) -> dict:
        Serialize every property for a create, keyed by storage field name.

    _dump_update_data(instance, attributes, repository_name) -> dict:
        Serialize the given changed properties for an update, keyed by
        storage field name.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

import msgpack

from patina.core.types import serialize_value

if TYPE_CHECKING:
    from patina.models.base import Model
    from patina.models.property import PropertyDescriptor


class Serializable:
    """Model mixin recording properties for serialization."""

    __serialized_properties__: ClassVar[list[str]]

    @classmethod
    def property_serialization_setup(cls, property: PropertyDescriptor) -> None:
        if "__serialized_properties__" not in cls.__dict__:
            cls.__serialized_properties__ = []
        if property.name not in cls.__serialized_properties__:
            cls.__serialized_properties__.append(property.name)

    @classmethod
    def serialized_properties(cls) -> list[str]:
        return list(cls.__dict__.get("__serialized_properties__", ()))

    def to_dict(self) -> dict[str, Any]:
        return {
            name: self.attribute_get(name)  # type: ignore[attr-defined]
            for name in self.serialized_properties()
        }

    def to_msgpack(self) -> bytes:
        properties = type(self).properties(self.repository_name)  # type: ignore[attr-defined]
        payload = {
            name: serialize_value(value, properties[name].primitive)
            for name, value in self.to_dict().items()
        }
        return msgpack.packb(payload)


def _dump_insert_data(instance: Model, repository_name: str) -> dict[str, Any]:
    """Serialize every property of an instance for a create."""
    return {
        prop.field(repository_name): serialize_value(prop.get(instance), prop.primitive)
        for prop in type(instance).properties(repository_name)
    }


def _dump_update_data(
    instance: Model,
    attributes: Mapping[PropertyDescriptor, Any],
    repository_name: str,
) -> dict[str, Any]:
    """Serialize changed properties of an instance for an update."""
    return {
        prop.field(repository_name): serialize_value(value, prop.primitive)
        for prop, value in attributes.items()
    }


__all__ = [
    "Serializable",
    "_dump_insert_data",
    "_dump_update_data",
]
