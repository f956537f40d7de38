"""Tests for the Serializable mixin and storage payload helpers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import msgpack
import pytest

from patina import (
    Field,
    MemoryAdapter,
    Model,
    Serializable,
    clear_repositories,
    register_repository,
)
from patina.models.registry import clear_registry
from patina.models.serializers import _dump_insert_data, _dump_update_data


@pytest.fixture(autouse=True)
def cleanup_registry():
    """Clean up registry and repositories before and after each test."""
    clear_registry()
    clear_repositories()
    yield
    clear_registry()
    clear_repositories()


@pytest.fixture
def adapter():
    adapter = MemoryAdapter()
    register_repository("default", adapter)
    return adapter


class TestSerializable:
    """Test the property serialization hook."""

    def test_properties_are_recorded_in_order(self):
        """Test each declared property is recorded once."""

        class Invoice(Serializable, Model):
            id: int = Field(serial=True)
            total: Decimal
            issued: date

        assert Invoice.serialized_properties() == ["id", "total", "issued"]

    def test_subclasses_record_their_own_list(self):
        """Test inherited properties are recorded for the subclass too."""

        class Invoice(Serializable, Model):
            id: int = Field(serial=True)

        class CreditNote(Invoice):
            reason: str

        assert Invoice.serialized_properties() == ["id"]
        assert CreditNote.serialized_properties() == ["id", "reason"]

    def test_to_dict(self):
        """Test to_dict() returns the current values."""

        class Invoice(Serializable, Model):
            id: int = Field(serial=True)
            total: Decimal

        invoice = Invoice(total="12.50")
        assert invoice.to_dict() == {"id": None, "total": Decimal("12.50")}

    def test_to_msgpack(self):
        """Test to_msgpack() packs serialized values."""

        class Invoice(Serializable, Model):
            id: int = Field(serial=True)
            total: Decimal
            issued: date

        invoice = Invoice(id=3, total="12.50", issued=date(2024, 5, 1))
        assert msgpack.unpackb(invoice.to_msgpack()) == {
            "id": 3,
            "total": "12.50",
            "issued": "2024-05-01",
        }

    def test_plain_models_have_no_hook(self):
        """Test models without the mixin do not get to_dict()."""

        class Invoice(Model):
            id: int = Field(serial=True)

        assert not hasattr(Invoice(), "to_dict")


class TestStoragePayloads:
    """Test insert and update payloads."""

    def test_insert_payload_uses_field_names(self, adapter):
        """Test every property is dumped under its storage field."""

        class Invoice(Model):
            id: int = Field(serial=True)
            dueOn: date
            total: Decimal = Field(field="amount")

        invoice = Invoice(id=1, dueOn="2024-06-30", total=Decimal("5"))
        assert _dump_insert_data(invoice, "default") == {
            "id": 1,
            "due_on": "2024-06-30",
            "amount": "5",
        }

    def test_update_payload_only_has_given_properties(self, adapter):
        """Test the update payload is limited to the changed properties."""

        class Invoice(Model):
            id: int = Field(serial=True)
            total: Decimal
            note: str

        invoice = Invoice(id=1, total="5", note="x")
        total = Invoice.properties()["total"]
        assert _dump_update_data(invoice, {total: Decimal("7.5")}, "default") == {
            "total": "7.5"
        }
