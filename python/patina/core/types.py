"""Unified type registry for the Patina ORM.

TYPE_REGISTRY maps each storage primitive to its descriptor:
    - name: primitive name used in reprs and adapter payloads
    - coerce: raw value → value of the primitive (see core.coercion)
    - serialize: value → msgpack-safe value
    - load: msgpack-safe value → value (defaults to coerce)

Supported type tokens are the primitives plus custom types whose
``primitive`` is one of them:

    bool (Boolean), str, Text, float, int, Decimal, datetime, date, time,
    object, type, Discriminator

Uses exact type() lookup for the registry, and isinstance() for the
"already typed" check in typecast() with bool excluded from the numeric
primitives.
"""

from __future__ import annotations

import pickle
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any, ClassVar

from patina.core import coercion

if TYPE_CHECKING:
    from patina.models.property import PropertyDescriptor


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """Describes how a storage primitive is coerced and serialized."""

    name: str
    coerce: Callable[[Any], Any]
    serialize: Callable[[Any], Any]
    load: Callable[[Any], Any] | None = None


def _class_path(value: type) -> str:
    return f"{value.__module__}.{value.__qualname__}"


def _identity(value: Any) -> Any:
    return value


TYPE_REGISTRY: dict[type, TypeDescriptor] = {
    bool: TypeDescriptor("boolean", coercion.coerce_bool, _identity),
    str: TypeDescriptor("string", coercion.coerce_str, _identity),
    float: TypeDescriptor("float", coercion.coerce_float, _identity),
    int: TypeDescriptor("integer", coercion.coerce_int, _identity),
    Decimal: TypeDescriptor("decimal", coercion.coerce_decimal, str),
    datetime: TypeDescriptor(
        "datetime", coercion.coerce_datetime, lambda v: v.isoformat()
    ),
    date: TypeDescriptor("date", coercion.coerce_date, lambda v: v.isoformat()),
    time: TypeDescriptor("time", coercion.coerce_time, lambda v: v.isoformat()),
    object: TypeDescriptor("object", _identity, pickle.dumps, pickle.loads),
    type: TypeDescriptor("class", coercion.find_const, _class_path),
}

Boolean = bool


class CustomType:
    """Base class for custom property types.

    A custom type stores as one of the registered primitives and carries
    default property options, merged under the options given at
    declaration time.

        class Email(CustomType):
            primitive = str
            options = {"length": 320, "format": "email"}
    """

    primitive: ClassVar[type] = str
    options: ClassVar[dict[str, Any]] = {}

    @classmethod
    def bind(cls, property: PropertyDescriptor) -> None:
        """Called once for each property declared with this type."""


class Text(CustomType):
    """Long text, loaded lazily unless the property says otherwise."""

    primitive = str
    options = {"lazy": True, "length": 65535}


def _model_class(instance: Any, property: Any) -> type:
    return type(instance)


class Discriminator(CustomType):
    """Class column for single-table inheritance.

    Defaults to the class of the instance, so each row records which
    model in the hierarchy it belongs to.
    """

    primitive = type
    options = {"default": _model_class, "nullable": False, "index": True}


TYPES: tuple[type, ...] = (
    bool,
    str,
    Text,
    float,
    int,
    Decimal,
    datetime,
    date,
    time,
    object,
    type,
    Discriminator,
)


def is_custom_type(token: Any) -> bool:
    return isinstance(token, type) and issubclass(token, CustomType)


def primitive_of(token: Any) -> Any:
    """Return the storage primitive of a type token."""
    if is_custom_type(token):
        return token.primitive
    return token


def is_supported(token: Any) -> bool:
    """Check whether a type token can back a property."""
    if token in TYPES:
        return True
    return is_custom_type(token) and token.primitive in TYPE_REGISTRY


def is_typed(value: Any, primitive: type) -> bool:
    """Check whether ``value`` already satisfies ``primitive``."""
    if primitive is not bool and isinstance(value, bool):
        return False
    return isinstance(value, primitive)


def typecast(value: Any, primitive: type, namespace: str | None = None) -> Any:
    """Coerce ``value`` into ``primitive``.

    No-op when the value is already typed, or is None and the primitive is
    not bool (None coerces to False for booleans).
    """
    if primitive is not bool and (value is None or is_typed(value, primitive)):
        return value
    if primitive is bool and isinstance(value, bool):
        return value
    if primitive is type:
        return coercion.find_const(value, namespace)
    return TYPE_REGISTRY[primitive].coerce(value)


def serialize_value(value: Any, primitive: type | None = None) -> Any:
    """Serialize a value for msgpack using TYPE_REGISTRY.

    Handles lists recursively, except for the object primitive, which
    pickles the whole value. Without an explicit primitive the exact type
    of the value picks the descriptor; values with no descriptor pass
    through (msgpack handles int, str, float, bool, None natively).
    """
    if value is None:
        return None
    if isinstance(value, list) and primitive is not object:
        return [serialize_value(v, primitive) for v in value]
    if primitive is None:
        desc = TYPE_REGISTRY.get(type(value))
        if desc is None and isinstance(value, type):
            desc = TYPE_REGISTRY[type]
    else:
        desc = TYPE_REGISTRY.get(primitive)
    if desc is not None:
        return desc.serialize(value)
    return value


def load_value(value: Any, primitive: type, namespace: str | None = None) -> Any:
    """Inverse of serialize_value() for a known primitive."""
    if value is None:
        return None
    desc = TYPE_REGISTRY[primitive]
    if desc.load is not None:
        return desc.load(value)
    return typecast(value, primitive, namespace)


__all__ = [
    "TypeDescriptor",
    "TYPE_REGISTRY",
    "TYPES",
    "Boolean",
    "CustomType",
    "Text",
    "Discriminator",
    "is_custom_type",
    "primitive_of",
    "is_supported",
    "is_typed",
    "typecast",
    "serialize_value",
    "load_value",
]
