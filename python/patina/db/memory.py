"""In-process storage adapter.

MemoryAdapter keeps one table per storage name. Each row is the msgpack
payload produced by _dump_insert_data(), keyed by the tuple of its
serialized key values:

    _tables = {
        "post": {
            (1,): b"\\x83\\xa2id\\x01\\xa5title\\xa2Hi...",
        },
    }

Serial keys are assigned from a per-table counter on create. Conditions
passed to read_many() are equality filters on property names; values
are typecast and serialized the same way as stored values before being
compared.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import msgpack

from patina.core.types import load_value, serialize_value
from patina.db.adapter import AbstractAdapter
from patina.db.repository import DEFAULT_REPOSITORY_NAME
from patina.exceptions import InvalidArgumentKind, PersistenceError
from patina.models.serializers import _dump_insert_data, _dump_update_data

if TYPE_CHECKING:
    from patina.models.base import Model
    from patina.models.property import PropertyDescriptor

logger = logging.getLogger(__name__)

RowKey = tuple[Any, ...]


class MemoryAdapter(AbstractAdapter):
    """Adapter storing msgpack-encoded rows in dictionaries."""

    def __init__(self, name: str = DEFAULT_REPOSITORY_NAME):
        super().__init__(name)
        self._tables: dict[str, dict[RowKey, bytes]] = {}
        self._serials: dict[str, int] = {}

    # Helpers

    def _table(self, model: type[Model]) -> dict[RowKey, bytes]:
        return self._tables.setdefault(model.storage_name(self.name), {})

    def _row_key(
        self, key_properties: Sequence[PropertyDescriptor], values: Iterable[Any]
    ) -> RowKey:
        return tuple(
            serialize_value(value, prop.primitive)
            for prop, value in zip(key_properties, values)
        )

    def _assign_serials(self, instance: Model) -> None:
        model = type(instance)
        storage_name = model.storage_name(self.name)
        for prop in model.key_properties(self.name):
            if not prop.serial:
                continue
            value = prop.get(instance)
            if value is None:
                value = self._serials.get(storage_name, 0) + 1
                prop.set(instance, value)
            if isinstance(value, int):
                self._serials[storage_name] = max(
                    self._serials.get(storage_name, 0), value
                )

    @staticmethod
    def _unpack(payload: bytes) -> dict[str, Any]:
        return msgpack.unpackb(payload)

    # Adapter API

    def create(self, instance: Model) -> None:
        model = type(instance)
        self._assign_serials(instance)
        key_properties = model.key_properties(self.name)
        values = [prop.get(instance) for prop in key_properties]
        if not key_properties or any(value is None for value in values):
            raise PersistenceError(
                f"cannot create {model.__name__} without a complete key"
            )

        row_key = self._row_key(key_properties, values)
        table = self._table(model)
        if row_key in table:
            raise PersistenceError(
                f"{model.__name__} with key {tuple(values)!r} already exists"
            )
        table[row_key] = msgpack.packb(_dump_insert_data(instance, self.name))
        logger.debug("Created %s row %r", model.storage_name(self.name), row_key)

    def update(
        self, instance: Model, attributes: Mapping[PropertyDescriptor, Any]
    ) -> None:
        model = type(instance)
        key_properties = model.key_properties(self.name)
        original = instance.original_values
        old_key = self._row_key(
            key_properties,
            (
                original[prop.name] if prop.name in original else prop.get(instance)
                for prop in key_properties
            ),
        )
        table = self._table(model)
        payload = table.pop(old_key, None)
        if payload is None:
            raise PersistenceError(
                f"{model.__name__} row {old_key!r} does not exist"
            )

        row = self._unpack(payload)
        row.update(_dump_update_data(instance, attributes, self.name))
        new_key = self._row_key(
            key_properties, (prop.get(instance) for prop in key_properties)
        )
        if new_key != old_key and new_key in table:
            table[old_key] = payload
            raise PersistenceError(
                f"{model.__name__} with key {new_key!r} already exists"
            )
        table[new_key] = msgpack.packb(row)
        logger.debug(
            "Updated %s row %r: %s",
            model.storage_name(self.name),
            new_key,
            ", ".join(prop.name for prop in attributes),
        )

    def delete(self, instance: Model) -> None:
        model = type(instance)
        key_properties = model.key_properties(self.name)
        row_key = self._row_key(
            key_properties, (prop.get(instance) for prop in key_properties)
        )
        if self._table(model).pop(row_key, None) is None:
            raise PersistenceError(
                f"{model.__name__} row {row_key!r} does not exist"
            )
        logger.debug("Deleted %s row %r", model.storage_name(self.name), row_key)

    def read_many(
        self,
        model: type[Model],
        properties: Iterable[PropertyDescriptor],
        conditions: Mapping[str, Any] | None = None,
        keys: Sequence[tuple[Any, ...]] | None = None,
    ) -> list[dict[str, Any]]:
        all_properties = model.properties(self.name)
        filters: dict[str, Any] = {}
        for name, value in (conditions or {}).items():
            prop = all_properties.get(name)
            if prop is None:
                raise InvalidArgumentKind(
                    f"{model.__name__} has no property {name!r}"
                )
            filters[prop.field(self.name)] = serialize_value(
                prop.typecast(value), prop.primitive
            )

        table = self._table(model)
        if keys is not None:
            key_properties = all_properties.key()
            wanted = [self._row_key(key_properties, key) for key in keys]
            payloads = [table[k] for k in dict.fromkeys(wanted) if k in table]
        else:
            payloads = list(table.values())

        properties = list(properties)
        rows: list[dict[str, Any]] = []
        for payload in payloads:
            stored = self._unpack(payload)
            if any(stored.get(f) != v for f, v in filters.items()):
                continue
            rows.append(
                {
                    prop.name: load_value(
                        stored.get(prop.field(self.name)),
                        prop.primitive,
                        prop.model.__module__,
                    )
                    for prop in properties
                }
            )
        logger.debug(
            "Read %d %s row(s) with %r",
            len(rows),
            model.storage_name(self.name),
            conditions or {},
        )
        return rows

    def dump(self, model: type[Model]) -> list[dict[str, Any]]:
        """Stored rows of a model, keyed by field name (for inspection)."""
        return [self._unpack(payload) for payload in self._table(model).values()]

    def clear(self) -> None:
        self._tables.clear()
        self._serials.clear()


__all__ = ["MemoryAdapter"]
