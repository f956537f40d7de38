"""Model base class.

Subclassing Model declares a model: annotated attributes become
properties, BelongsTo attributes become many-to-one relationships, and
the class is registered in the model registry.

    class Author(Model):
        id: int = Field(serial=True)
        name: str

    class Post(Model):
        id: int = Field(serial=True)
        title: str = Field(length=(1, 200))
        body: Text
        author = BelongsTo()

        class Meta:
            storage_name = "posts"

Meta options:
    storage_name      storage name (default: lower-cased class name)
    repository_name   default repository context (default: "default")

Subclasses inherit every property and relationship of their parent
model. A model with a Discriminator property stores its whole hierarchy
under one storage name and loads each row as the class it records.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar, get_origin

from patina.db.repository import (
    DEFAULT_REPOSITORY_NAME,
    Repository,
    current_repository_name,
    get_repository,
)
from patina.exceptions import (
    InvalidArgumentKind,
    InvalidPropertyDefinition,
    NotFoundError,
)
from patina.models.attributes import AttributeStore
from patina.models.field import PatinaFieldInfo
from patina.models.property import PropertyAccessor, PropertyDescriptor
from patina.models.registry import (
    finalize_pending,
    register_model,
    unregister_model,
)
from patina.models.schema import ModelSchema, PropertySet
from patina.models.utils import _unpack_annotated, _unwrap_optional

if TYPE_CHECKING:
    from patina.associations.many_to_one import ManyToOneProxy
    from patina.associations.relationship import RelationshipDescriptor

_MISSING = object()


def _parent_model(cls: type) -> type[Model] | None:
    for base in cls.__mro__[1:]:
        if base is not Model and issubclass(base, Model):
            return base
    return None


def _annotations(cls: type) -> dict[str, Any]:
    try:
        return inspect.get_annotations(cls, eval_str=True)
    except NameError as exc:
        raise InvalidPropertyDefinition(
            f"cannot resolve type {exc.name!r} in annotations of {cls.__name__}"
        ) from exc


class Model:
    """Base class for all Patina models."""

    __schema__: ClassVar[ModelSchema]
    __storage_name__: ClassVar[str]

    _new_record = True
    _repository_name: str | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        meta = cls.__dict__.get("Meta")
        parent = _parent_model(cls)

        repository_name = getattr(meta, "repository_name", None)
        if repository_name is None:
            repository_name = (
                parent.__schema__.default_repository_name
                if parent is not None
                else DEFAULT_REPOSITORY_NAME
            )
        cls.__schema__ = ModelSchema(cls, repository_name)

        storage_name = getattr(meta, "storage_name", None)
        if storage_name is None:
            if parent is not None and parent.properties().discriminator() is not None:
                storage_name = parent.__storage_name__
            else:
                storage_name = cls.__name__.lower()
        cls.__storage_name__ = storage_name

        register_model(cls)
        try:
            if parent is not None:
                cls._inherit_from(parent)
            cls._declare_properties()
            cls._declare_relationships()
        except Exception:
            unregister_model(cls)
            raise
        finalize_pending()

    @classmethod
    def _inherit_from(cls, parent: type[Model]) -> None:
        from patina.associations.many_to_one import setup

        for prop in parent.properties():
            PropertyDescriptor.create(cls, prop.name, prop.type, prop.options)
        for relationship in parent.__schema__.iter_relationships():
            setup(relationship.name, cls, relationship.options)

    @classmethod
    def _declare_properties(cls) -> None:
        from patina.associations.many_to_one import BelongsTo

        for name, hint in _annotations(cls).items():
            if name.startswith("_"):
                continue
            value = cls.__dict__.get(name, _MISSING)
            if isinstance(value, BelongsTo):
                continue
            if hint is ClassVar or get_origin(hint) is ClassVar:
                continue

            base, metadata = _unpack_annotated(hint)
            base, optional = _unwrap_optional(base)
            options: dict[str, Any] = {}
            for item in metadata:
                if isinstance(item, PatinaFieldInfo):
                    options.update(item.options)
            if isinstance(value, PatinaFieldInfo):
                options.update(value.options)
            elif value is not _MISSING:
                options.setdefault("default", value)
            if optional:
                options.setdefault("nullable", True)

            if name in cls.__dict__:
                delattr(cls, name)
            PropertyDescriptor.create(cls, name, base, options)

    @classmethod
    def _declare_relationships(cls) -> None:
        from patina.associations.many_to_one import BelongsTo, setup

        for name, value in list(cls.__dict__.items()):
            if isinstance(value, BelongsTo):
                delattr(cls, name)
                setup(name, cls, value.options)

    # Schema introspection

    @classmethod
    def properties(cls, repository_name: str | None = None) -> PropertySet:
        return cls.__schema__.properties(repository_name)

    @classmethod
    def relationships(
        cls, repository_name: str | None = None
    ) -> dict[str, RelationshipDescriptor]:
        return cls.__schema__.relationships(repository_name)

    @classmethod
    def key_properties(
        cls, repository_name: str | None = None
    ) -> list[PropertyDescriptor]:
        return cls.properties(repository_name).key()

    @classmethod
    def storage_name(cls, repository_name: str | None = None) -> str:
        return cls.__storage_name__

    @classmethod
    def repository(cls, name: str | None = None) -> Repository:
        """Explicit name, else the ambient context, else the model default."""
        if name is None:
            name = current_repository_name() or cls.__schema__.default_repository_name
        return get_repository(name)

    # Declaration

    @classmethod
    def many_to_one(cls, name: str, **options: Any) -> RelationshipDescriptor:
        """Declare a many-to-one relationship after class creation."""
        from patina.associations.many_to_one import setup

        return setup(name, cls, options)

    belongs_to = many_to_one

    # Finders

    @classmethod
    def load(
        cls,
        rows: Iterable[Mapping[str, Any]],
        properties: Iterable[PropertyDescriptor],
        *,
        repository_name: str | None = None,
    ) -> list[Model]:
        """Build persisted instances from adapter rows as one result set.

        Rows recording another class through a Discriminator are built as
        that class, and skipped when it is not ``cls`` or a subclass.
        """
        repo_name = cls.repository(repository_name).name
        properties = list(properties)
        discriminator = cls.properties(repo_name).discriminator()
        instances: list[Model] = []
        for row in rows:
            model: Any = cls
            if discriminator is not None and row.get(discriminator.name) is not None:
                model = discriminator.typecast(row[discriminator.name])
                if not (isinstance(model, type) and issubclass(model, cls)):
                    continue
            instance = model.__new__(model)
            instance._new_record = False
            instance._repository_name = repo_name
            store = instance._attributes()
            for prop in properties:
                if prop.name in row:
                    store.load(prop, row[prop.name])
            store.collection = instances
            instances.append(instance)
        return instances

    @classmethod
    def all(
        cls, *, repository_name: str | None = None, **conditions: Any
    ) -> list[Model]:
        repo = cls.repository(repository_name)
        properties = cls.properties(repo.name).defaults()
        rows = repo.adapter.read_many(cls, properties, conditions)
        return cls.load(rows, properties, repository_name=repo.name)

    @classmethod
    def first(
        cls, *, repository_name: str | None = None, **conditions: Any
    ) -> Model | None:
        repo = cls.repository(repository_name)
        return repo.adapter.read_one(cls, conditions)

    @classmethod
    def get(cls, *key: Any, repository_name: str | None = None) -> Model:
        """Fetch a record by key values, raising NotFoundError if missing."""
        repo = cls.repository(repository_name)
        key_properties = cls.key_properties(repo.name)
        if len(key) != len(key_properties):
            raise InvalidArgumentKind(
                f"{cls.__name__} key has {len(key_properties)} part(s), got {len(key)}"
            )
        conditions = {prop.name: value for prop, value in zip(key_properties, key)}
        instance = repo.adapter.read_one(cls, conditions)
        if instance is None:
            raise NotFoundError(f"{cls.__name__} with key {key!r} not found")
        return instance

    # Instance API

    def __init__(self, **attributes: Any):
        from patina.associations.many_to_one import ManyToOneAccessor

        for name, value in attributes.items():
            accessor = getattr(type(self), name, None)
            if not isinstance(accessor, (PropertyAccessor, ManyToOneAccessor)):
                raise TypeError(
                    f"{type(self).__name__}() got an unexpected attribute {name!r}"
                )
            setattr(self, name, value)

    @property
    def new_record(self) -> bool:
        return self._new_record

    @property
    def repository_name(self) -> str:
        if self._repository_name is not None:
            return self._repository_name
        return current_repository_name() or self.__schema__.default_repository_name

    def _attributes(self) -> AttributeStore:
        store = self.__dict__.get("_patina_store")
        if store is None:
            store = self.__dict__["_patina_store"] = AttributeStore(self)
        return store

    def _property(self, name: str) -> PropertyDescriptor:
        prop = type(self).properties(self.repository_name).get(name)
        if prop is None:
            raise AttributeError(f"{type(self).__name__} has no property {name!r}")
        return prop

    def _key_values(self, repository_name: str | None = None) -> tuple[Any, ...]:
        store = self._attributes()
        return tuple(
            store.get(prop)
            for prop in type(self).key_properties(repository_name or self.repository_name)
        )

    def attribute_get(self, name: str) -> Any:
        return self._attributes().get(self._property(name))

    def attribute_set(self, name: str, value: Any) -> None:
        self._attributes().set(self._property(name), value)

    def attribute_loaded(self, name: str) -> bool:
        return self._attributes().loaded(name)

    @property
    def key(self) -> tuple[Any, ...]:
        return self._key_values()

    @property
    def attributes(self) -> dict[str, Any]:
        """Values of all publicly readable properties."""
        return {
            prop.name: self.attribute_get(prop.name)
            for prop in type(self).properties(self.repository_name)
            if prop.reader_visibility == "public"
        }

    @property
    def original_values(self) -> dict[str, Any]:
        return self._attributes().original_values

    @property
    def dirty_attributes(self) -> dict[PropertyDescriptor, Any]:
        store = self._attributes()
        return {
            self._property(name): store.get(self._property(name))
            for name in store.dirty_names()
        }

    @property
    def dirty(self) -> bool:
        return bool(self._attributes().dirty_names())

    # Associations

    def association(self, name: str) -> ManyToOneProxy:
        """Proxy for a many-to-one relationship, created on first use."""
        from patina.associations.many_to_one import ManyToOneProxy

        associations = self.__dict__.setdefault("_patina_associations", {})
        proxy = associations.get(name)
        if proxy is None:
            relationships = type(self).relationships(self.repository_name)
            relationship = relationships.get(name)
            if relationship is None:
                raise AttributeError(
                    f"{type(self).__name__} has no relationship {name!r}"
                )
            proxy = associations[name] = ManyToOneProxy(relationship, self)
        return proxy

    @property
    def child_associations(self) -> list[ManyToOneProxy]:
        return list(self.__dict__.get("_patina_associations", {}).values())

    # Persistence

    def save(self) -> bool:
        """Persist the record, saving pending parents first."""
        for association in self.child_associations:
            association.save()

        repo = self.repository(self.repository_name)
        if self._new_record:
            repo.adapter.create(self)
            self._new_record = False
            self._repository_name = repo.name
        else:
            dirty = self.dirty_attributes
            if dirty:
                repo.adapter.update(self, dirty)
        self._attributes().reset()
        return True

    def destroy(self) -> bool:
        if self._new_record:
            return False
        self.repository(self.repository_name).adapter.delete(self)
        self._new_record = True
        return True

    def reload(self) -> Model:
        """Forget loaded values and associations so they are read again."""
        if not self._new_record:
            key_names = tuple(prop.name for prop in type(self).key_properties(self.repository_name))
            self._attributes().clear(keep=key_names)
        for association in self.child_associations:
            association.reload()
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        if self is other:
            return True
        if self._new_record or other._new_record:
            return False
        if type(self).__storage_name__ != type(other).__storage_name__:
            return False
        return self._key_values() == other._key_values()

    def __hash__(self) -> int:
        if self._new_record:
            return id(self)
        return hash((type(self).__storage_name__, self._key_values()))

    def __repr__(self) -> str:
        store = self._attributes()
        loaded = ", ".join(
            f"{prop.name}={store.get(prop)!r}"
            for prop in type(self).properties(self.repository_name)
            if store.loaded(prop.name)
        )
        return f"<{type(self).__name__} {loaded}>" if loaded else f"<{type(self).__name__}>"

    @classmethod
    def property(cls, name: str, type: Any, **options: Any) -> PropertyDescriptor:
        """Declare a property after class creation.

        Post.property("title", str, length=100)
        """
        descriptor = PropertyDescriptor.create(cls, name, type, options)
        finalize_pending()
        return descriptor


__all__ = ["Model"]
