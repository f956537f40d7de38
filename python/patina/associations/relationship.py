"""Relationship descriptors for single-valued associations.

A RelationshipDescriptor records how a child model refers to one parent
record: which parent model, which parent properties form the referenced
key, and which child properties hold the foreign key.

    class Comment(Model):
        id: int = Field(serial=True)
        post = BelongsTo()                # parent model "Post"
        editor = BelongsTo("User", child_key=["edited_by"])

Options (anything else is rejected):
    class_name        parent model name; defaults to classify(name)
    child_key         child property name(s); defaults to "<name>_<parent key>"
    parent_key        parent property name(s); defaults to the parent's key
    repository_name   repository for lookups; defaults to the child's

Missing child key properties are created on the child model, typed like
the parent key, once the parent model is declared.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from patina.db.repository import repository
from patina.exceptions import InvalidRelationshipDefinition, TypeMismatchError
from patina.models.registry import resolve_model

if TYPE_CHECKING:
    from patina.models.base import Model
    from patina.models.property import PropertyDescriptor

logger = logging.getLogger(__name__)


class RelationshipOptions(BaseModel):
    """Closed set of options accepted by a relationship declaration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    class_name: str | None = None
    child_key: list[str] | None = None
    parent_key: list[str] | None = None
    repository_name: str | None = None

    @field_validator("child_key", "parent_key", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class RelationshipDescriptor:
    """Metadata for one many-to-one association of a child model."""

    def __init__(
        self,
        name: str,
        repository_name: str,
        child_model: type[Model],
        parent_model_name: str,
        options: Mapping[str, Any],
    ):
        try:
            opts = RelationshipOptions.model_validate(dict(options))
        except ValidationError as exc:
            raise InvalidRelationshipDefinition(
                f"invalid options for relationship "
                f"{child_model.__name__}.{name}: {exc}"
            ) from exc

        self.name = name
        self.repository_name = repository_name
        self.child_model = child_model
        self.parent_model_name = parent_model_name
        self.options = dict(options)
        self._child_key_names = opts.child_key
        self._parent_key_names = opts.parent_key
        self._parent_model: type[Model] | None = None
        self._finalized = False

    @property
    def parent_model(self) -> type[Model]:
        if self._parent_model is None:
            model = self._find_parent_model()
            if model is None:
                raise self._missing_parent()
            self._parent_model = model
        return self._parent_model

    def _find_parent_model(self) -> type[Model] | None:
        return resolve_model(self.parent_model_name, near=self.child_model.__module__)

    def _missing_parent(self) -> InvalidRelationshipDefinition:
        return InvalidRelationshipDefinition(
            f"parent model {self.parent_model_name!r} of "
            f"{self.child_model.__name__}.{self.name} is not declared"
        )

    @property
    def parent_key(self) -> list[PropertyDescriptor]:
        properties = self.parent_model.properties(self.repository_name)
        if self._parent_key_names is None:
            key = properties.key()
            if not key:
                raise InvalidRelationshipDefinition(
                    f"parent model {self.parent_model.__name__} has no key"
                )
            return key
        missing = [n for n in self._parent_key_names if n not in properties]
        if missing:
            raise InvalidRelationshipDefinition(
                f"{self.parent_model.__name__} has no properties {', '.join(missing)}"
            )
        return [properties[n] for n in self._parent_key_names]

    def _child_key_names_for(self, parent_key: list[PropertyDescriptor]) -> list[str]:
        if self._child_key_names is not None:
            if len(self._child_key_names) != len(parent_key):
                raise InvalidRelationshipDefinition(
                    f"child key of {self.child_model.__name__}.{self.name} has "
                    f"{len(self._child_key_names)} part(s), parent key has {len(parent_key)}"
                )
            return list(self._child_key_names)
        return [f"{self.name}_{prop.name}" for prop in parent_key]

    @property
    def child_key(self) -> list[PropertyDescriptor]:
        self.finalize(strict=True)
        properties = self.child_model.properties(self.repository_name)
        return [properties[n] for n in self._child_key_names_for(self.parent_key)]

    def finalize(self, *, strict: bool = False) -> bool:
        """Create missing child key properties once the parent is declared.

        Returns False while the parent model is unknown, unless ``strict``,
        in which case InvalidRelationshipDefinition is raised.
        """
        if self._finalized:
            return True
        if self._parent_model is None and self._find_parent_model() is None:
            if strict:
                raise self._missing_parent()
            return False

        from patina.models.property import PropertyDescriptor

        parent_key = self.parent_key
        properties = self.child_model.properties(self.repository_name)
        for name, parent_prop in zip(self._child_key_names_for(parent_key), parent_key):
            if name not in properties:
                PropertyDescriptor.create(
                    self.child_model,
                    name,
                    parent_prop.primitive,
                    {"index": True},
                )
                logger.debug(
                    "Created child key %s.%s for %s",
                    self.child_model.__name__,
                    name,
                    self,
                )
        self._finalized = True
        return True

    def get_parent(self, child: Model) -> Model | None:
        """Look up the parent record referenced by the child's key values."""
        self._check_child(child)
        values = [prop.get(child) for prop in self.child_key]
        if any(value is None for value in values):
            return None
        conditions = {
            prop.name: value for prop, value in zip(self.parent_key, values)
        }
        with repository(self.repository_name) as repo:
            logger.debug("Looking up %s with %r", self, conditions)
            return repo.adapter.read_one(self.parent_model, conditions)

    def attach_parent(self, child: Model, parent: Model | None) -> None:
        """Copy the parent's key values into the child's key (None clears it)."""
        self._check_child(child)
        if parent is not None and not isinstance(parent, self.parent_model):
            raise TypeMismatchError(
                f"parent should be a {self.parent_model.__name__}, "
                f"but was {parent.__class__.__name__}"
            )
        for child_prop, parent_prop in zip(self.child_key, self.parent_key):
            child_prop.set(child, None if parent is None else parent_prop.get(parent))

    def _check_child(self, child: Any) -> None:
        if not isinstance(child, self.child_model):
            raise TypeMismatchError(
                f"child should be a {self.child_model.__name__}, "
                f"but was {child.__class__.__name__}"
            )

    def __repr__(self) -> str:
        return (
            f"<Relationship:{self.child_model.__name__}.{self.name} "
            f"-> {self.parent_model_name}>"
        )


__all__ = ["RelationshipOptions", "RelationshipDescriptor"]
