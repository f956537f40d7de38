"""Many-to-one associations.

Declaring ``author = BelongsTo()`` on a model installs an accessor that
hands out a ManyToOneProxy, a per-instance stand-in for the parent record
that looks the parent up on first use:

    comment.author              # None if there is no parent, else the proxy
    comment.author.name         # forwarded to the parent Author
    comment.author = author     # replace()

Proxy states:
    unresolved        no lookup made yet (initial)
    resolved-present  parent cached
    resolved-empty    lookup made, no parent

    unresolved       --lookup-->   resolved-present | resolved-empty
    resolved-*       --reload()--> unresolved
    any              --replace(v)--> resolved-present (v) | resolved-empty (None)

Assigning a persisted parent (or None) updates the child's foreign key
right away. Assigning a new, unsaved parent defers that until save(),
which persists the parent and then attaches it. Those two steps are not
atomic: if attaching fails the parent stays saved and unlinked.

Everything except replace(), save() and reload() is forwarded to the
parent. type() and isinstance() see the proxy itself.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from patina.associations.relationship import RelationshipDescriptor
from patina.db.repository import repository
from patina.exceptions import InvalidArgumentKind, TypeMismatchError
from patina.models.registry import finalize_pending, mark_pending
from patina.models.utils import classify

if TYPE_CHECKING:
    from patina.models.base import Model

logger = logging.getLogger(__name__)


class BelongsTo:
    """Declare a many-to-one relationship on a model class body.

    author = BelongsTo()                        # parent model "Author"
    editor = BelongsTo("User", child_key="edited_by")
    """

    __slots__ = ("options",)

    def __init__(self, class_name: str | None = None, **options: Any):
        if class_name is not None:
            options["class_name"] = class_name
        self.options = options

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.options.items())
        return f"BelongsTo({args})"


def setup(
    name: str, model: type[Model], options: Mapping[str, Any] | None = None
) -> RelationshipDescriptor:
    """Register a many-to-one relationship and bind its accessor."""
    if not isinstance(name, str) or not name.isidentifier():
        raise InvalidArgumentKind(f"name should be an identifier, but was {name!r}")
    if options is None:
        options = {}
    if not isinstance(options, Mapping):
        raise InvalidArgumentKind(
            f"options should be a mapping, but was {options.__class__.__name__}"
        )

    repository_name = (
        options.get("repository_name") or model.__schema__.default_repository_name
    )
    relationship = RelationshipDescriptor(
        name,
        repository_name,
        model,
        options.get("class_name") or classify(name),
        options,
    )
    model.__schema__.register_relationship(relationship)
    setattr(model, name, ManyToOneAccessor(name))
    logger.debug("Declared %r", relationship)

    mark_pending(model)
    finalize_pending()
    return relationship


class ManyToOneAccessor:
    """Descriptor installed on the child model for one relationship."""

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __get__(self, instance: Model | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        proxy = instance.association(self.name)
        return None if proxy._resolve() is None else proxy

    def __set__(self, instance: Model, value: Any) -> None:
        instance.association(self.name).replace(value)


class ManyToOneProxy:
    """Lazily resolved stand-in for the parent of one child instance."""

    __slots__ = ("_relationship", "_child", "_parent", "_resolved")

    def __init__(self, relationship: RelationshipDescriptor, child: Model):
        object.__setattr__(self, "_relationship", relationship)
        object.__setattr__(self, "_child", child)
        object.__setattr__(self, "_parent", None)
        object.__setattr__(self, "_resolved", False)

    def _resolve(self) -> Model | None:
        if not self._resolved:
            parent = self._relationship.get_parent(self._child)
            object.__setattr__(self, "_parent", parent)
            object.__setattr__(self, "_resolved", True)
        return self._parent

    def replace(self, parent: Model | None) -> None:
        """Point the association at ``parent`` without a storage lookup."""
        if isinstance(parent, ManyToOneProxy):
            parent = parent._resolve()
        parent_model = self._relationship.parent_model
        if parent is not None and not isinstance(parent, parent_model):
            raise TypeMismatchError(
                f"parent should be a {parent_model.__name__}, "
                f"but was {parent.__class__.__name__}"
            )
        object.__setattr__(self, "_parent", parent)
        object.__setattr__(self, "_resolved", True)
        if parent is None or not parent.new_record:
            self._relationship.attach_parent(self._child, parent)

    def save(self) -> None:
        """Persist a new parent, then attach it to the child."""
        parent = self._parent
        if parent is None or not parent.new_record:
            return
        with repository(self._relationship.repository_name):
            logger.debug("Saving new parent for %r", self._relationship)
            parent.save()
            self._relationship.attach_parent(self._child, parent)

    def reload(self) -> ManyToOneProxy:
        """Drop the cached parent so the next access looks it up again."""
        object.__setattr__(self, "_parent", None)
        object.__setattr__(self, "_resolved", False)
        return self

    def __getattr__(self, name: str) -> Any:
        if name in ManyToOneProxy.__slots__:
            raise AttributeError(name)
        return getattr(self._resolve(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ManyToOneProxy.__slots__:
            object.__setattr__(self, name, value)
        else:
            setattr(self._resolve(), name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self._resolve(), name)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ManyToOneProxy):
            other = other._resolve()
        return self._resolve() == other

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __hash__(self) -> int:
        return hash(self._resolve())

    def __bool__(self) -> bool:
        return bool(self._resolve())

    def __repr__(self) -> str:
        return repr(self._resolve())

    def __str__(self) -> str:
        return str(self._resolve())

    def __dir__(self) -> list[str]:
        return dir(self._resolve())


__all__ = [
    "BelongsTo",
    "ManyToOneAccessor",
    "ManyToOneProxy",
    "setup",
]
