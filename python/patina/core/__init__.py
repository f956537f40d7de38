"""Type registry and value coercion."""

from patina.core.types import (
    TYPES,
    Boolean,
    CustomType,
    Discriminator,
    Text,
    load_value,
    serialize_value,
    typecast,
)

__all__ = [
    "TYPES",
    "Boolean",
    "CustomType",
    "Discriminator",
    "Text",
    "typecast",
    "serialize_value",
    "load_value",
]
