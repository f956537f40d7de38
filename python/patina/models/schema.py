"""Per-model schema tables.

Each Model class owns one ModelSchema (``Model.__schema__``) holding its
property and relationship descriptors per repository name. Tables for a
repository other than the model's default start as a copy of the default
table on first lookup.

The schema is written while the model is declared and read afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from patina.associations.relationship import RelationshipDescriptor
    from patina.models.base import Model
    from patina.models.property import PropertyDescriptor


class PropertySet:
    """Ordered collection of property descriptors keyed by name."""

    def __init__(self, properties: Iterable[PropertyDescriptor] = ()):
        self._properties: dict[str, PropertyDescriptor] = {}
        for prop in properties:
            self.add(prop)

    def add(self, prop: PropertyDescriptor) -> None:
        self._properties[prop.name] = prop

    def __getitem__(self, name: str) -> PropertyDescriptor:
        return self._properties[name]

    def get(self, name: str) -> PropertyDescriptor | None:
        return self._properties.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[PropertyDescriptor]:
        return iter(self._properties.values())

    def __len__(self) -> int:
        return len(self._properties)

    def names(self) -> list[str]:
        return list(self._properties)

    def key(self) -> list[PropertyDescriptor]:
        return [prop for prop in self if prop.key]

    def defaults(self) -> list[PropertyDescriptor]:
        """Properties loaded eagerly with every record."""
        return [prop for prop in self if not prop.lazy]

    def lazy_context(self, group: str) -> list[PropertyDescriptor]:
        return [prop for prop in self if group in prop.lazy_groups]

    def lazy_load_context(self, prop: PropertyDescriptor) -> list[PropertyDescriptor]:
        """Properties loaded together with ``prop`` when it is first read.

        A lazy property pulls in every property sharing one of its groups.
        A non-lazy property is loaded on its own.
        """
        if not prop.lazy:
            return [prop]
        return [
            other
            for other in self
            if other is prop or set(other.lazy_groups) & set(prop.lazy_groups)
        ]

    def discriminator(self) -> PropertyDescriptor | None:
        from patina.core.types import Discriminator

        for prop in self:
            if prop.type is Discriminator:
                return prop
        return None

    def indexes(self) -> dict[str, list[str]]:
        """Index name → property names, composite where a name is shared."""
        return self._index_groups("index")

    def unique_indexes(self) -> dict[str, list[str]]:
        return self._index_groups("unique_index")

    def _index_groups(self, attr: str) -> dict[str, list[str]]:
        groups: dict[str, list[str]] = {}
        for prop in self:
            for group in getattr(prop, attr):
                groups.setdefault(group, []).append(prop.name)
        return groups

    def copy(self) -> PropertySet:
        return PropertySet(self)

    def __repr__(self) -> str:
        return f"PropertySet({', '.join(self._properties)})"


class ModelSchema:
    """Property and relationship tables of one model, per repository."""

    def __init__(self, model: type[Model], default_repository_name: str):
        self.model = model
        self.default_repository_name = default_repository_name
        self._properties: dict[str, PropertySet] = {}
        self._relationships: dict[str, dict[str, RelationshipDescriptor]] = {}

    def properties(self, repository_name: str | None = None) -> PropertySet:
        name = repository_name or self.default_repository_name
        table = self._properties.get(name)
        if table is None:
            if name == self.default_repository_name:
                table = PropertySet()
            else:
                table = self.properties(self.default_repository_name).copy()
            self._properties[name] = table
        return table

    def relationships(
        self, repository_name: str | None = None
    ) -> dict[str, RelationshipDescriptor]:
        name = repository_name or self.default_repository_name
        table = self._relationships.get(name)
        if table is None:
            if name == self.default_repository_name:
                table = {}
            else:
                table = dict(self.relationships(self.default_repository_name))
            self._relationships[name] = table
        return table

    def register_property(self, prop: PropertyDescriptor) -> None:
        """Add a property to the default table and every table copied from it."""
        self.properties()
        for table in self._properties.values():
            table.add(prop)

    def register_relationship(
        self, relationship: RelationshipDescriptor, repository_name: str | None = None
    ) -> None:
        """Add a relationship to the table of the declaring repository.

        Declaring under the default repository also adds the relationship
        to tables already copied for other repositories. Re-declaring a
        name replaces the previous descriptor.
        """
        name = repository_name or self.default_repository_name
        self.relationships(name)[relationship.name] = relationship
        if name == self.default_repository_name:
            for table in self._relationships.values():
                table[relationship.name] = relationship

    def iter_relationships(self) -> Iterator[RelationshipDescriptor]:
        seen: set[int] = set()
        for table in list(self._relationships.values()):
            for relationship in list(table.values()):
                if id(relationship) not in seen:
                    seen.add(id(relationship))
                    yield relationship


__all__ = ["PropertySet", "ModelSchema"]
