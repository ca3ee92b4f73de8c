import json

import pytest

from waiter_orders import ledger as ops
from waiter_orders.persistence import (
    SNAPSHOT_VERSION,
    deserialize_ledger,
    serialize_ledger,
    storage_key,
)
from waiter_orders.schemas import Ledger, PlacedItem

from .conftest import SALAD, SOUP


def _busy_ledger() -> Ledger:
    ledger = ops.set_active_table(Ledger(), 5)
    ledger = ops.add_item(ledger, SOUP, 3, "less salt")
    ledger = ops.set_placed_items(ledger, 5, [PlacedItem(id=2, name="Caesar Salad", quantity=1)])
    ledger = ops.set_active_table(ledger, 12)
    ledger = ops.add_item(ledger, SALAD, 2)
    return ledger


def test_storage_key_uses_prefix():
    assert storage_key("abc123", "waiterOrders_") == "waiterOrders_abc123"


def test_storage_key_defaults_to_configured_prefix(monkeypatch):
    monkeypatch.setenv("STORAGE_KEY_PREFIX", "ledger:")
    assert storage_key("abc123") == "ledger:abc123"


def test_serialized_snapshot_never_contains_placed_items():
    data = json.loads(serialize_ledger(_busy_ledger()))

    assert data["version"] == SNAPSHOT_VERSION
    assert data["active_table_id"] == "12"
    assert data["orders_by_table"]["5"]["placed_items"] == []
    assert data["orders_by_table"]["5"]["pending_items"][0]["remarks"] == "less salt"


def test_round_trip_keeps_pending_and_empties_placed():
    ledger = _busy_ledger()
    restored = deserialize_ledger(serialize_ledger(ledger))

    assert restored == ops.strip_placed_items(ledger)
    assert restored.order_for(5).placed_items == ()
    assert restored.order_for(12).pending_items == ledger.order_for(12).pending_items


def test_deserialize_drops_placed_items_written_by_older_clients():
    raw = json.dumps({
        "orders_by_table": {
            "7": {
                "pending_items": [{"id": 1, "name": "Soup", "unit_price": 4.5, "quantity": 1}],
                "placed_items": [{"id": 2, "quantity": 4, "status": "served"}],
            }
        },
        "active_table_id": 7,
    })
    restored = deserialize_ledger(raw)

    assert restored.active_table_id == "7"
    assert restored.order_for(7).placed_items == ()
    assert restored.order_for(7).pending_items[0].quantity == 1


def test_deserialize_accepts_short_field_names():
    raw = json.dumps({
        "orders_by_table": {
            "3": {"pending_items": [{"id": 1, "name": "Soup", "price": 4.5, "qty": 2, "remarks": ""}]}
        },
        "active_table_id": None,
    })
    line = deserialize_ledger(raw).order_for(3).pending_items[0]

    assert line.unit_price == 4.5
    assert line.quantity == 2
    assert line.remarks is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '{"orders_by_table": {"1": {"pending_items": [{"id": 1}]}}}',
        '{"orders_by_table": "nope"}',
    ],
)
def test_deserialize_rejects_malformed_snapshots(raw):
    with pytest.raises(ValueError):
        deserialize_ledger(raw)


def test_deserialize_tolerates_other_versions(caplog):
    raw = json.dumps({"orders_by_table": {}, "active_table_id": "4", "version": 99})
    assert deserialize_ledger(raw).active_table_id == "4"
    assert "version 99" in caplog.text
