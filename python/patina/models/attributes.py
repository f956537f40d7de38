"""Per-instance attribute storage.

Every model instance owns one AttributeStore, created on first attribute
access. It holds the current value of each loaded property, the original
value of each changed property, and a reference to the result set the
instance was loaded with.

Reading an unloaded property:
    - new record: the property default is computed and stored
    - persisted record: the property is fetched from storage together with
      its lazy group (every property sharing one of its groups), for every
      instance of the same result set still missing those values, in one
      adapter call

    posts = Post.all()
    posts[0].body          # loads body (lazy "default" group) for all posts
    posts[1].body          # no storage call
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from patina.exceptions import InvalidArgumentKind

if TYPE_CHECKING:
    from patina.models.base import Model
    from patina.models.property import PropertyDescriptor

logger = logging.getLogger(__name__)

_UNSET = object()


class AttributeStore:
    """Property values of one model instance, keyed by property name."""

    __slots__ = ("instance", "collection", "_values", "_original")

    def __init__(self, instance: Model):
        self.instance = instance
        self.collection: list[Model] | None = None
        self._values: dict[str, Any] = {}
        self._original: dict[str, Any] = {}

    def loaded(self, name: str) -> bool:
        return name in self._values

    def get(self, prop: PropertyDescriptor) -> Any:
        if prop.name in self._values:
            return self._values[prop.name]
        if self.instance.new_record:
            value = prop.default_for(self.instance)
            self._values[prop.name] = value
            return value
        self._lazy_load(prop)
        return self._values.get(prop.name)

    def set(self, prop: PropertyDescriptor, value: Any) -> None:
        value = prop.typecast(value)
        current = self._values.get(prop.name, _UNSET)
        if prop.key and value is None and current not in (_UNSET, None):
            raise InvalidArgumentKind(
                f"key property {prop!r} cannot be set to None once assigned"
            )
        if prop.name not in self._original:
            self._original[prop.name] = current
        elif self._original[prop.name] == value:
            del self._original[prop.name]
        self._values[prop.name] = value

    def load(self, prop: PropertyDescriptor, value: Any) -> None:
        """Store a value read from storage, without marking it changed."""
        self._values[prop.name] = prop.typecast(value)
        self._original.pop(prop.name, None)

    @property
    def original_values(self) -> dict[str, Any]:
        return {
            name: (None if value is _UNSET else value)
            for name, value in self._original.items()
        }

    def dirty_names(self) -> list[str]:
        return [
            name
            for name, original in self._original.items()
            if original is _UNSET or original != self._values.get(name)
        ]

    def reset(self) -> None:
        """Forget original values, e.g. after the instance was saved."""
        self._original.clear()

    def clear(self, keep: tuple[str, ...] = ()) -> None:
        """Drop loaded values except ``keep`` so they are read again."""
        self._values = {k: v for k, v in self._values.items() if k in keep}
        self._original.clear()
        self.collection = None

    def _lazy_load(self, prop: PropertyDescriptor) -> None:
        instance = self.instance
        model = type(instance)
        repo = model.repository(instance.repository_name)
        properties = model.properties(repo.name)
        context = properties.lazy_load_context(prop)
        key = properties.key()

        collection = self.collection or [instance]
        targets = [
            member
            for member in collection
            if type(member) is model
            and not member.new_record
            and any(not member._attributes().loaded(p.name) for p in context)
        ]
        if not any(member is instance for member in targets):
            targets.append(instance)

        logger.debug(
            "Loading %s for %d %s record(s)",
            ", ".join(p.name for p in context),
            len(targets),
            model.__name__,
        )
        rows = repo.adapter.read_many(
            model,
            [*key, *[p for p in context if p not in key]],
            keys=[member._key_values(repo.name) for member in targets],
        )
        by_key = {tuple(row[p.name] for p in key): row for row in rows}
        for member in targets:
            row = by_key.get(member._key_values(repo.name))
            if row is None:
                continue
            store = member._attributes()
            for p in context:
                if not store.loaded(p.name):
                    store.load(p, row.get(p.name))


__all__ = ["AttributeStore"]
