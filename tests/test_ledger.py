from waiter_orders import ledger as ops
from waiter_orders.schemas import Ledger, LineItem, PlacedItem, TableOrder

from .conftest import PASTA, SALAD, SOUP


def _at_table(table_id=5) -> Ledger:
    return ops.set_active_table(Ledger(), table_id)


def _pending(ledger: Ledger, table_id=5):
    return ledger.order_for(table_id).pending_items


# =============================================================================
# TABLE SELECTION
# =============================================================================

def test_set_active_table_creates_no_order():
    ledger = _at_table(5)
    assert ledger.active_table_id == "5"
    assert ledger.orders_by_table == {}


def test_table_ids_are_compared_as_strings():
    ledger = ops.add_item(_at_table(5), SOUP)
    assert _pending(ledger, "5") == _pending(ledger, 5)
    assert list(ledger.orders_by_table) == ["5"]


def test_active_order_is_empty_without_active_table():
    assert ops.active_order(Ledger()) == TableOrder()


# =============================================================================
# PENDING EDITS
# =============================================================================

def test_add_item_merges_same_product_and_remarks():
    ledger = _at_table()
    ledger = ops.add_item(ledger, SOUP, 2, "less salt")
    ledger = ops.add_item(ledger, SOUP, 1, "less salt")

    pending = _pending(ledger)
    assert len(pending) == 1
    assert pending[0].quantity == 3
    assert pending[0].remarks == "less salt"


def test_add_item_keeps_distinct_remarks_apart():
    ledger = _at_table()
    ledger = ops.add_item(ledger, SOUP, 1, "")
    ledger = ops.add_item(ledger, SOUP, 1, "less salt")

    assert [(item.id, item.remarks) for item in _pending(ledger)] == [(1, None), (1, "less salt")]


def test_empty_and_missing_remarks_are_the_same_line():
    ledger = _at_table()
    ledger = ops.add_item(ledger, SOUP, 1, "")
    ledger = ops.add_item(ledger, SOUP, 2, None)

    assert len(_pending(ledger)) == 1
    assert _pending(ledger)[0].quantity == 3


def test_add_item_copies_product_details():
    ledger = ops.add_item(_at_table(), SALAD, 2)
    line = _pending(ledger)[0]
    assert line == LineItem(id=2, name="Caesar Salad", unit_price=8.99, quantity=2)
    assert line.total_price == 17.98


def test_add_item_without_active_table_is_ignored():
    ledger = Ledger()
    assert ops.add_item(ledger, SOUP, 2) is ledger


def test_add_item_with_non_positive_quantity_is_ignored():
    ledger = _at_table()
    assert ops.add_item(ledger, SOUP, 0) is ledger
    assert ops.add_item(ledger, SOUP, -3) is ledger


def test_remove_item_drops_matching_line_only():
    ledger = _at_table()
    ledger = ops.add_item(ledger, SOUP, 1, "less salt")
    ledger = ops.add_item(ledger, SOUP, 1)
    ledger = ops.remove_item(ledger, 1, "less salt")

    assert [(item.id, item.remarks) for item in _pending(ledger)] == [(1, None)]


def test_remove_missing_item_is_a_noop():
    ledger = ops.add_item(_at_table(), SOUP)
    assert ops.remove_item(ledger, 99) is ledger


def test_update_quantity_sets_quantity():
    ledger = ops.add_item(_at_table(), PASTA, 1, "no bacon")
    ledger = ops.update_quantity(ledger, 3, "no bacon", 4)
    assert _pending(ledger)[0].quantity == 4


def test_update_quantity_to_zero_equals_remove():
    ledger = ops.add_item(_at_table(), SOUP, 2)
    ledger = ops.add_item(ledger, SALAD, 1)

    assert ops.update_quantity(ledger, 1, None, 0) == ops.remove_item(ledger, 1, None)
    assert ops.update_quantity(ledger, 1, "", -1) == ops.remove_item(ledger, 1, None)


def test_edits_only_touch_the_active_table():
    ledger = ops.add_item(_at_table(1), SOUP)
    ledger = ops.set_active_table(ledger, 2)
    ledger = ops.add_item(ledger, SALAD)
    ledger = ops.remove_item(ledger, 1)

    assert [item.id for item in _pending(ledger, 1)] == [1]
    assert [item.id for item in _pending(ledger, 2)] == [2]


# =============================================================================
# CLEARING
# =============================================================================

def test_clear_table_orders_uses_explicit_table():
    ledger = ops.add_item(_at_table(3), SOUP)
    ledger = ops.set_active_table(ledger, 7)
    ledger = ops.add_item(ledger, SALAD)

    ledger = ops.clear_table_orders(ledger, 3)

    assert "3" not in ledger.orders_by_table
    assert ledger.active_table_id == "7"
    assert [item.id for item in _pending(ledger, 7)] == [2]


def test_clear_unknown_table_is_a_noop():
    ledger = _at_table()
    assert ops.clear_table_orders(ledger, 42) is ledger


# =============================================================================
# TWO-PHASE COMMIT
# =============================================================================

def test_commit_pending_moves_everything_to_placed():
    ledger = ops.add_item(_at_table(), SOUP, 3, "less salt")
    ledger = ops.commit_pending(ledger, 5)

    order = ledger.order_for(5)
    assert order.pending_items == ()
    assert order.placed_items == (
        PlacedItem(id=1, name="Soup", unit_price=4.5, quantity=3, remarks="less salt", status="ordered"),
    )


def test_commit_pending_appends_to_existing_placed_items():
    earlier = PlacedItem(id=2, name="Caesar Salad", unit_price=8.99, quantity=1, status="served")
    ledger = ops.set_placed_items(_at_table(), 5, [earlier])
    ledger = ops.add_item(ledger, SOUP)
    ledger = ops.commit_pending(ledger, 5)

    assert [item.id for item in ledger.order_for(5).placed_items] == [2, 1]


def test_commit_pending_with_nothing_pending_is_a_noop():
    ledger = _at_table()
    assert ops.commit_pending(ledger, 5) is ledger


def test_commit_pending_keeps_items_added_after_the_snapshot():
    ledger = ops.add_item(_at_table(), SOUP, 2)
    sent = _pending(ledger)

    # More soup and a salad arrive while the batch is in flight
    ledger = ops.add_item(ledger, SOUP, 1)
    ledger = ops.add_item(ledger, SALAD, 1)
    ledger = ops.commit_pending(ledger, 5, sent)

    order = ledger.order_for(5)
    assert [(item.id, item.quantity) for item in order.pending_items] == [(1, 1), (2, 1)]
    assert [(item.id, item.quantity) for item in order.placed_items] == [(1, 2)]


def test_commit_then_server_list_equals_server_list():
    server_items = [
        PlacedItem(id=1, name="Soup", unit_price=4.5, quantity=3, status="preparing"),
    ]
    ledger = ops.add_item(_at_table(), SOUP, 3)
    ledger = ops.commit_pending(ledger, 5)
    ledger = ops.set_placed_items(ledger, 5, server_items)

    assert ledger.order_for(5).placed_items == tuple(server_items)
    assert ledger.order_for(5).pending_items == ()


def test_set_placed_items_leaves_pending_alone():
    ledger = ops.add_item(_at_table(), SOUP, 2)
    ledger = ops.set_placed_items(ledger, 5, [PlacedItem(id=9, quantity=1)])

    assert _pending(ledger)[0].quantity == 2
    assert ledger.order_for(5).placed_items[0].id == 9


def test_set_placed_items_creates_entry_for_untouched_table():
    ledger = ops.set_placed_items(Ledger(), 8, [PlacedItem(id=1, quantity=1)])
    assert ledger.order_for(8).placed_items[0].id == 1
    assert ledger.active_table_id is None


def test_strip_placed_items():
    ledger = ops.add_item(_at_table(), SOUP)
    ledger = ops.set_placed_items(ledger, 5, [PlacedItem(id=2, quantity=1)])
    stripped = ops.strip_placed_items(ledger)

    assert stripped.order_for(5).placed_items == ()
    assert stripped.order_for(5).pending_items == _pending(ledger)


# =============================================================================
# REDUCER
# =============================================================================

def test_reduce_replays_a_session():
    actions = [
        ops.SetActiveTable(5),
        ops.AddItem(SOUP, 2, "less salt"),
        ops.AddItem(SOUP, 1, "less salt"),
        ops.AddItem(SALAD, 1),
        ops.UpdateQuantity(2, None, 3),
        ops.RemoveItem(2),
        ops.CommitPending(5),
    ]
    ledger = Ledger()
    for action in actions:
        ledger = ops.reduce(ledger, action)

    expected = ops.add_item(_at_table(5), SOUP, 3, "less salt")
    expected = ops.commit_pending(expected, 5)
    assert ledger == expected


def test_reduce_ignores_unknown_actions():
    ledger = ops.add_item(_at_table(), SOUP)
    assert ops.reduce(ledger, object()) is ledger


def test_hydrate_replaces_ledger():
    replacement = ops.add_item(_at_table(9), PASTA)
    assert ops.reduce(Ledger(), ops.Hydrate(replacement)) == replacement


def test_transitions_do_not_mutate_input():
    before = ops.add_item(_at_table(), SOUP)
    snapshot = before.model_dump()
    ops.add_item(before, SOUP, 2)
    ops.commit_pending(before, 5)
    ops.clear_table_orders(before, 5)
    assert before.model_dump() == snapshot


# =============================================================================
# DERIVED VIEWS / PAYLOAD
# =============================================================================

def test_has_unsent_items():
    ledger = _at_table()
    assert not ops.has_unsent_items(ledger, 5)
    ledger = ops.add_item(ledger, SOUP)
    assert ops.has_unsent_items(ledger, 5)
    ledger = ops.commit_pending(ledger, 5)
    assert not ops.has_unsent_items(ledger, 5)


def test_visible_placed_items_hide_cancelled():
    order = TableOrder(
        placed_items=(
            PlacedItem(id=1, quantity=1, status="served"),
            PlacedItem(id=2, quantity=1, status="cancelled"),
        )
    )
    assert [item.id for item in ops.visible_placed_items(order)] == [1]


def test_pending_total():
    ledger = ops.add_item(_at_table(), SOUP, 3)
    ledger = ops.add_item(ledger, SALAD, 1)
    assert ops.pending_total(ledger.order_for(5)) == 22.49


def test_build_submission_payload_wire_shape():
    ledger = ops.add_item(_at_table(5), SOUP, 3, "less salt")
    ledger = ops.add_item(ledger, SALAD, 1)

    payload = ops.build_submission_payload(5, _pending(ledger))

    assert payload.to_wire() == {
        "tableId": 5,
        "items": [
            {"id": 1, "quantity": 3, "remarks": "less salt"},
            {"id": 2, "quantity": 1, "remarks": None},
        ],
        "source": "waiter",
    }


def test_submission_payload_sends_numeric_table_ids_as_numbers():
    line = [LineItem.from_product(SOUP, 1)]

    assert ops.build_submission_payload("5", line).to_wire()["tableId"] == 5
    assert ops.build_submission_payload("A2", line).to_wire()["tableId"] == "A2"
    assert ops.build_submission_payload("05", line).to_wire()["tableId"] == "05"
