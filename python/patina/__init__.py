"""Patina: typed model properties and many-to-one associations.

    from patina import BelongsTo, Field, MemoryAdapter, Model, Text
    from patina import register_repository

    register_repository("default", MemoryAdapter())

    class Author(Model):
        id: int = Field(serial=True)
        name: str

    class Post(Model):
        id: int = Field(serial=True)
        title: str
        body: Text
        author = BelongsTo()

    post = Post(title="Hello", body="...")
    post.author = Author(name="Ada")
    post.save()                     # saves the author first
    post.author_id                  # → 1
"""

from patina.associations import BelongsTo
from patina.core.types import Boolean, CustomType, Discriminator, Text
from patina.db import (
    AbstractAdapter,
    MemoryAdapter,
    clear_repositories,
    get_repository,
    register_repository,
    repository,
    unregister_repository,
)
from patina.exceptions import (
    InvalidArgumentKind,
    InvalidPropertyDefinition,
    InvalidRelationshipDefinition,
    NotFoundError,
    PatinaError,
    PersistenceError,
    RepositoryError,
    TypeCoercionError,
    TypeMismatchError,
    UnresolvedConstantError,
)
from patina.models import Field, Model, PropertyDescriptor, Serializable

__version__ = "0.1.0"

__all__ = [
    "Model",
    "Field",
    "BelongsTo",
    "PropertyDescriptor",
    "Serializable",
    "Boolean",
    "CustomType",
    "Discriminator",
    "Text",
    "AbstractAdapter",
    "MemoryAdapter",
    "register_repository",
    "unregister_repository",
    "clear_repositories",
    "get_repository",
    "repository",
    "PatinaError",
    "InvalidArgumentKind",
    "TypeMismatchError",
    "InvalidPropertyDefinition",
    "InvalidRelationshipDefinition",
    "TypeCoercionError",
    "UnresolvedConstantError",
    "RepositoryError",
    "PersistenceError",
    "NotFoundError",
]
