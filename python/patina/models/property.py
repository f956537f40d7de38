"""Property descriptors: per-model metadata for one typed field.

A PropertyDescriptor is created once per declared property and never
changes afterwards. Creating one validates the declaration, derives the
storage metadata, binds accessors onto the model and notifies the
model's optional extension hooks.

Supported types:
    bool (Boolean), str, Text, float, int, Decimal, datetime, date, time,
    object, type, Discriminator, and CustomType subclasses whose primitive
    is one of these.

Options (anything else is rejected):
    accessor, reader, writer   "public" | "protected" | "private"
    public, protected, private bool flags; protected/private force the writer
    lazy                       False | True ("default" group) | group | [groups]
    default                    literal, or callable(instance, property)
    nullable                   defaults to True unless key or non-None default
    key, serial                serial implies key; keys are never lazy
    field                      storage field name override
    length, size               int or inclusive (min, max) / range; default 50
    scale, precision           Decimal/float only; default 10 and 0
    index, unique_index        True or group name(s), shared names are composite
    unique                     defaults to serial or key
    format, check, ordinal, auto_validation, validates, lock, track, primitive

Visibility maps onto Python naming:
    public     →  title
    protected  →  _title
    private    →  _Post__title   (so ``self.__title`` works inside Post)

Boolean properties also get a predicate reader ``is_<name>`` unless the
model already defines one.
"""

from __future__ import annotations

import inspect
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from patina.core.types import (
    TYPE_REGISTRY,
    is_custom_type,
    is_supported,
    primitive_of,
    typecast,
)
from patina.exceptions import (
    InvalidArgumentKind,
    InvalidPropertyDefinition,
    TypeMismatchError,
)
from patina.models.utils import _bare_name

if TYPE_CHECKING:
    from patina.models.base import Model

logger = logging.getLogger(__name__)

DEFAULT_LENGTH = 50
DEFAULT_SCALE = 10
DEFAULT_PRECISION = 0

LENGTH_PRIMITIVES = (str, type)
SCALED_PRIMITIVES = (Decimal, float)

Visibility = Literal["public", "protected", "private"]
GroupSpec = bool | str | list[str]
LengthSpec = int | range | tuple[int, int]


class PropertyOptions(BaseModel):
    """Closed set of options accepted by a property declaration."""

    model_config = ConfigDict(
        extra="forbid", frozen=True, arbitrary_types_allowed=True
    )

    accessor: Visibility | None = None
    reader: Visibility | None = None
    writer: Visibility | None = None
    public: bool = False
    protected: bool = False
    private: bool = False
    lazy: GroupSpec | None = None
    default: Any = None
    nullable: bool | None = None
    key: bool = False
    serial: bool = False
    field: str | None = None
    size: LengthSpec | None = None
    length: LengthSpec | None = None
    format: Any = None
    index: GroupSpec = False
    unique_index: GroupSpec = False
    unique: bool | None = None
    check: Any = None
    ordinal: int | None = None
    auto_validation: bool = True
    validates: Any = None
    lock: bool = False
    track: Any = None
    scale: int | None = None
    precision: int | None = None
    primitive: Any = None

    @field_validator("length", "size")
    @classmethod
    def _check_length(cls, value: LengthSpec | None) -> LengthSpec | None:
        if value is None:
            return value
        if isinstance(value, range):
            if not value:
                raise ValueError("length range is empty")
            low, high = min(value), max(value)
        elif isinstance(value, tuple):
            low, high = value
        else:
            low = high = value
        if low < 0 or high < 1 or low > high:
            raise ValueError(f"invalid length {value!r}")
        return value


@runtime_checkable
class SupportsAutoValidation(Protocol):
    """Models that infer validation rules from property declarations.

    The hook is looked up and called on the model class, so it must be a
    classmethod.
    """

    @classmethod
    def auto_generate_validations(cls, property: PropertyDescriptor) -> None: ...


@runtime_checkable
class SupportsPropertySerialization(Protocol):
    """Models that keep a list of properties to serialize.

    Like the validation hook, this must be a classmethod.
    """

    @classmethod
    def property_serialization_setup(cls, property: PropertyDescriptor) -> None: ...


def _upper_bound(spec: LengthSpec) -> int:
    if isinstance(spec, range):
        return max(spec)
    if isinstance(spec, tuple):
        return spec[1]
    return spec


def _groups(spec: GroupSpec | None, auto_name: str) -> tuple[str, ...]:
    if spec is None or spec is False:
        return ()
    if spec is True:
        return (auto_name,)
    if isinstance(spec, str):
        return (spec,)
    return tuple(spec)


def accessor_name(model: type, name: str, visibility: str) -> str:
    """Attribute name used for an accessor with the given visibility."""
    if visibility == "public":
        return name
    if visibility == "protected":
        return f"_{name}"
    return f"_{model.__name__.lstrip('_')}__{name}"


class PropertyAccessor:
    """Descriptor installed on the model class for one property accessor."""

    __slots__ = ("property", "attr_name", "readable", "writable")

    def __init__(
        self,
        prop: PropertyDescriptor,
        attr_name: str,
        *,
        readable: bool = True,
        writable: bool = True,
    ):
        self.property = prop
        self.attr_name = attr_name
        self.readable = readable
        self.writable = writable

    def __get__(self, instance: Model | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        if not self.readable:
            raise AttributeError(
                f"'{type(instance).__name__}.{self.attr_name}' is write-only"
            )
        return instance.attribute_get(self.property.name)

    def __set__(self, instance: Model, value: Any) -> None:
        if not self.writable:
            raise AttributeError(
                f"'{type(instance).__name__}.{self.attr_name}' is read-only"
            )
        instance.attribute_set(self.property.name, value)

    def __repr__(self) -> str:
        return f"<PropertyAccessor {self.attr_name} of {self.property!r}>"


class PropertyDescriptor:
    """Metadata for one typed property of a model."""

    def __init__(
        self,
        model: type[Model],
        name: str,
        type: Any,
        options: dict[str, Any] | None = None,
    ):
        from patina.models.base import Model

        if not (inspect.isclass(model) and issubclass(model, Model)):
            raise InvalidArgumentKind(f"model is a {model!r}, but is not a Model class")
        if not isinstance(name, str):
            raise InvalidArgumentKind(
                f"name should be a str, but was {name.__class__.__name__}"
            )
        if options is not None and not isinstance(options, dict):
            raise InvalidArgumentKind(
                f"options should be a dict, but was {options.__class__.__name__}"
            )
        bare = _bare_name(name)
        if bare is None:
            raise InvalidPropertyDefinition(
                f"{name!r} is not a valid property name for {model.__name__}"
            )
        if not is_supported(type):
            raise InvalidPropertyDefinition(
                f"type {type!r} of {model.__name__}.{bare} is not a supported type"
            )

        self.model = model
        self.name = bare
        self.type = type
        self.custom = is_custom_type(type)
        self.options: dict[str, Any] = (
            {**type.options, **(options or {})} if self.custom else dict(options or {})
        )
        opts = self._validate_options(self.options)

        self.primitive = primitive_of(
            opts.primitive if opts.primitive is not None else type
        )
        if self.primitive not in TYPE_REGISTRY:
            raise InvalidPropertyDefinition(
                f"primitive {self.primitive!r} of {model.__name__}.{bare} is not supported"
            )

        self.lock = opts.lock
        self.track = opts.track
        self.format = opts.format
        self.check = opts.check
        self.ordinal = opts.ordinal
        self.auto_validation = opts.auto_validation
        self.validates = opts.validates

        self.serial = opts.serial
        self.key = opts.key or self.serial
        self.default = opts.default
        if self.key:
            self.nullable = False
        elif opts.nullable is not None:
            self.nullable = opts.nullable
        else:
            self.nullable = self.default is None
        self.unique = opts.unique if opts.unique is not None else self.key
        self.index = _groups(opts.index, f"index_{bare}")
        self.unique_index = _groups(opts.unique_index, f"unique_index_{bare}")

        self.lazy_groups = () if self.key else _groups(opts.lazy, "default")
        self.lazy = bool(self.lazy_groups)

        self.length: int | None = None
        self.scale: int | None = None
        self.precision: int | None = None
        if self.primitive in LENGTH_PRIMITIVES:
            spec = opts.length if opts.length is not None else opts.size
            self.length = _upper_bound(spec) if spec is not None else DEFAULT_LENGTH
        elif self.primitive in SCALED_PRIMITIVES:
            self.scale = opts.scale if opts.scale is not None else DEFAULT_SCALE
            self.precision = (
                opts.precision if opts.precision is not None else DEFAULT_PRECISION
            )

        self._field = opts.field
        self._field_cache: dict[str, str] = {}

        self.reader_visibility = opts.reader or opts.accessor or "public"
        self.writer_visibility = opts.writer or opts.accessor or "public"
        if opts.protected:
            self.writer_visibility = "protected"
        if opts.private:
            self.writer_visibility = "private"

        self.reader_name = accessor_name(model, self.name, self.reader_visibility)
        self.writer_name = accessor_name(model, self.name, self.writer_visibility)
        self.predicate_name: str | None = None

    @classmethod
    def create(
        cls,
        model: type[Model],
        name: str,
        type: Any,
        options: dict[str, Any] | None = None,
    ) -> PropertyDescriptor:
        """Declare a property: validate, register, bind accessors, run hooks."""
        prop = cls(model, name, type, options)
        if prop.custom:
            prop.type.bind(prop)
        model.__schema__.register_property(prop)
        prop._bind_accessors()

        if isinstance(model, SupportsAutoValidation):
            model.auto_generate_validations(prop)
        if isinstance(model, SupportsPropertySerialization):
            model.property_serialization_setup(prop)

        logger.debug("Declared %r as %s", prop, prop.type.__name__)
        return prop

    @staticmethod
    def _validate_options(options: dict[str, Any]) -> PropertyOptions:
        try:
            return PropertyOptions.model_validate(options)
        except ValidationError as exc:
            unknown = [
                str(err["loc"][0])
                for err in exc.errors()
                if err["type"] == "extra_forbidden"
            ]
            if unknown:
                raise InvalidPropertyDefinition(
                    f"options contained unknown keys: {', '.join(unknown)}"
                ) from exc
            raise InvalidPropertyDefinition(f"invalid property options: {exc}") from exc

    def _bind_accessors(self) -> None:
        model = self.model
        if self.reader_name == self.writer_name:
            setattr(model, self.reader_name, PropertyAccessor(self, self.reader_name))
        else:
            setattr(
                model,
                self.reader_name,
                PropertyAccessor(self, self.reader_name, writable=False),
            )
            setattr(
                model,
                self.writer_name,
                PropertyAccessor(self, self.writer_name, readable=False),
            )

        if self.primitive is bool and not self.name.startswith("is_"):
            predicate = accessor_name(model, f"is_{self.name}", self.reader_visibility)
            existing = getattr(model, predicate, None)
            if existing is None or isinstance(existing, PropertyAccessor):
                setattr(
                    model,
                    predicate,
                    PropertyAccessor(self, predicate, writable=False),
                )
                self.predicate_name = predicate

    def field(self, repository_name: str | None = None) -> str:
        """Name of the storage field backing this property."""
        if self._field is not None:
            return self._field
        repo = self.model.repository(repository_name)
        name = self._field_cache.get(repo.name)
        if name is None:
            name = repo.adapter.field_naming_convention(self.name)
            self._field_cache[repo.name] = name
        return name

    @property
    def size(self) -> int | None:
        return self.length

    def _check_instance(self, instance: Any) -> None:
        if not isinstance(instance, self.model):
            raise TypeMismatchError(
                f"instance should be a {self.model.__name__}, "
                f"but was {instance.__class__.__name__}"
            )

    def get(self, instance: Model) -> Any:
        self._check_instance(instance)
        return instance.attribute_get(self.name)

    def set(self, instance: Model, value: Any) -> None:
        self._check_instance(instance)
        instance.attribute_set(self.name, value)

    def typecast(self, value: Any) -> Any:
        return typecast(value, self.primitive, self.model.__module__)

    def default_for(self, instance: Model) -> Any:
        default = self.default
        if callable(default) and not isinstance(default, type):
            return default(instance, self)
        return default

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertyDescriptor):
            return NotImplemented
        return other.model is self.model and other.name == self.name

    def __hash__(self) -> int:
        return hash((self.model, self.name))

    def __repr__(self) -> str:
        return f"<Property:{self.model.__name__}:{self.name}>"


__all__ = [
    "DEFAULT_LENGTH",
    "DEFAULT_SCALE",
    "DEFAULT_PRECISION",
    "PropertyOptions",
    "PropertyAccessor",
    "PropertyDescriptor",
    "SupportsAutoValidation",
    "SupportsPropertySerialization",
    "accessor_name",
]
