"""Model declaration and property metadata.

Classes:
    Model: Base class for all models. Provides:
        - Property declaration from annotations and Field(...)
        - Many-to-one declaration via BelongsTo() or Model.many_to_one()
        - all(), first(), get() finders
        - save(), destroy(), reload() instance methods

    Field: Property options for an annotated attribute:
        - key / serial: Mark as (auto-assigned) key
        - lazy: Load on first access, grouped with other lazy properties
        - length / scale / precision: Storage sizing
        - reader / writer / accessor: "public", "protected" or "private"
        - index / unique_index: Index groups

    PropertyDescriptor: Per-model metadata for one property.
    Serializable: Mixin adding to_dict() and to_msgpack().

Model Registry:
    register_model(): Register a model in the global registry.
    unregister_model(): Remove a model from the registry.
    registered_models(): Get dict of all registered models.
    clear_registry(): Remove all registered models.

Example:
    from patina import Model, Field, Text

    class Post(Model):
        id: int = Field(serial=True)
        title: str = Field(length=200)
        body: Text
        published: bool = False
"""

from patina.models.base import Model
from patina.models.field import Field, PatinaFieldInfo
from patina.models.property import PropertyDescriptor
from patina.models.registry import (
    clear_registry,
    register_model,
    registered_models,
    unregister_model,
)
from patina.models.serializers import Serializable

__all__ = [
    "Model",
    "Field",
    "PatinaFieldInfo",
    "PropertyDescriptor",
    "Serializable",
    "register_model",
    "unregister_model",
    "registered_models",
    "clear_registry",
]
