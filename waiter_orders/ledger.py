"""
Order Ledger State Machine

Pure transitions over the ``Ledger``: every function here takes the current
ledger and returns the next one, with no I/O and no hidden state. The same
transitions are available as action objects for ``reduce`` so a session can
be replayed deterministically:

    ledger = Ledger()
    for action in actions:
        ledger = reduce(ledger, action)

Two-phase submission:
    phase 1  commit_pending     optimistic local move of pending -> placed
    phase 2  set_placed_items   authoritative list from the kitchen

Pending items are the only slice local edits touch; placed items change
through those two transitions alone.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from waiter_orders.schemas import (
    EMPTY_ORDER,
    Ledger,
    LineItem,
    MenuProduct,
    PlacedItem,
    ProductId,
    SubmissionItem,
    SubmissionPayload,
    TableOrder,
    normalize_remarks,
    normalize_table_id,
)


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def _with_order(ledger: Ledger, table_id: str, order: TableOrder) -> Ledger:
    orders = dict(ledger.orders_by_table)
    orders[table_id] = order
    return ledger.model_copy(update={"orders_by_table": orders})


def _replace_pending(
    ledger: Ledger,
    table_id: str,
    pending: Sequence[LineItem],
) -> Ledger:
    order = ledger.order_for(table_id)
    return _with_order(
        ledger,
        table_id,
        order.model_copy(update={"pending_items": tuple(pending)}),
    )


def _find(pending: Sequence[LineItem], item_id: ProductId, remarks: Optional[str]) -> int:
    key = (item_id, normalize_remarks(remarks))
    for index, entry in enumerate(pending):
        if entry.key == key:
            return index
    return -1


# =============================================================================
# TRANSITIONS
# =============================================================================

def set_active_table(ledger: Ledger, table_id: Any) -> Ledger:
    """Point the ledger at a table. No order entry is created."""
    return ledger.model_copy(update={"active_table_id": normalize_table_id(table_id)})


def add_item(
    ledger: Ledger,
    product: MenuProduct,
    quantity: int = 1,
    remarks: Optional[str] = "",
) -> Ledger:
    """
    Add ``quantity`` of ``product`` to the active table's pending items.

    Lines merge on ``(product.id, remarks)``; "" and None are the same
    remarks. Without an active table, or with a quantity below one, the
    ledger is returned unchanged.
    """
    table_id = ledger.active_table_id
    if table_id is None or quantity < 1:
        return ledger

    remarks = normalize_remarks(remarks)
    pending = list(ledger.order_for(table_id).pending_items)
    index = _find(pending, product.id, remarks)

    if index > -1:
        existing = pending[index]
        pending[index] = existing.model_copy(
            update={"quantity": existing.quantity + quantity}
        )
    else:
        pending.append(LineItem.from_product(product, quantity, remarks))

    return _replace_pending(ledger, table_id, pending)


def remove_item(ledger: Ledger, item_id: ProductId, remarks: Optional[str] = None) -> Ledger:
    """Drop the matching pending line of the active table, if any."""
    table_id = ledger.active_table_id
    if table_id is None:
        return ledger

    pending = list(ledger.order_for(table_id).pending_items)
    index = _find(pending, item_id, remarks)
    if index == -1:
        return ledger

    del pending[index]
    return _replace_pending(ledger, table_id, pending)


def update_quantity(
    ledger: Ledger,
    item_id: ProductId,
    remarks: Optional[str],
    new_quantity: int,
) -> Ledger:
    """Set a pending line's quantity; zero or less removes the line."""
    if new_quantity <= 0:
        return remove_item(ledger, item_id, remarks)

    table_id = ledger.active_table_id
    if table_id is None:
        return ledger

    pending = list(ledger.order_for(table_id).pending_items)
    index = _find(pending, item_id, remarks)
    if index == -1:
        return ledger

    pending[index] = pending[index].model_copy(update={"quantity": new_quantity})
    return _replace_pending(ledger, table_id, pending)


def clear_table_orders(ledger: Ledger, table_id: Any) -> Ledger:
    """Forget everything about a table (it was freed or vacated)."""
    table_id = normalize_table_id(table_id)
    if table_id not in ledger.orders_by_table:
        return ledger

    orders = dict(ledger.orders_by_table)
    del orders[table_id]
    return ledger.model_copy(update={"orders_by_table": orders})


def set_placed_items(ledger: Ledger, table_id: Any, items: Sequence[PlacedItem]) -> Ledger:
    """Replace a table's placed items with the kitchen's list."""
    table_id = normalize_table_id(table_id)
    order = ledger.order_for(table_id)
    return _with_order(
        ledger,
        table_id,
        order.model_copy(update={"placed_items": tuple(items)}),
    )


def commit_pending(
    ledger: Ledger,
    table_id: Any,
    sent: Optional[Sequence[LineItem]] = None,
) -> Ledger:
    """
    Optimistically move submitted lines from pending to placed.

    With ``sent`` omitted every pending line moves. With ``sent`` given only
    those quantities move, so lines added (or topped up) while the
    submission was in flight stay pending.
    """
    table_id = normalize_table_id(table_id)
    order = ledger.order_for(table_id)

    if sent is None:
        moved = list(order.pending_items)
        remaining: list[LineItem] = []
    else:
        moved = list(sent)
        sent_quantities: dict[tuple, int] = {}
        for line in moved:
            sent_quantities[line.key] = sent_quantities.get(line.key, 0) + line.quantity
        remaining = []
        for line in order.pending_items:
            left = line.quantity - sent_quantities.pop(line.key, 0)
            if left > 0:
                remaining.append(line.model_copy(update={"quantity": left}))

    if not moved:
        return ledger

    placed = order.placed_items + tuple(PlacedItem.from_line_item(line) for line in moved)
    return _with_order(
        ledger,
        table_id,
        TableOrder(pending_items=tuple(remaining), placed_items=placed),
    )


def strip_placed_items(ledger: Ledger) -> Ledger:
    """Drop every table's placed items (they are stale once persisted)."""
    orders = {
        table_id: order.model_copy(update={"placed_items": ()})
        for table_id, order in ledger.orders_by_table.items()
    }
    return ledger.model_copy(update={"orders_by_table": orders})


# =============================================================================
# ACTIONS
# =============================================================================

@dataclass(frozen=True)
class SetActiveTable:
    table_id: Any


@dataclass(frozen=True)
class AddItem:
    product: MenuProduct
    quantity: int = 1
    remarks: Optional[str] = ""


@dataclass(frozen=True)
class RemoveItem:
    item_id: ProductId
    remarks: Optional[str] = None


@dataclass(frozen=True)
class UpdateQuantity:
    item_id: ProductId
    remarks: Optional[str]
    quantity: int


@dataclass(frozen=True)
class ClearTableOrders:
    table_id: Any


@dataclass(frozen=True)
class SetPlacedItems:
    table_id: Any
    items: tuple[PlacedItem, ...]


@dataclass(frozen=True)
class CommitPending:
    table_id: Any
    sent: Optional[tuple[LineItem, ...]] = None


@dataclass(frozen=True)
class Hydrate:
    """Replace the whole ledger (snapshot load or identity reset)."""
    ledger: Ledger


_HANDLERS: dict[type, Callable[[Ledger, Any], Ledger]] = {
    SetActiveTable: lambda ledger, a: set_active_table(ledger, a.table_id),
    AddItem: lambda ledger, a: add_item(ledger, a.product, a.quantity, a.remarks),
    RemoveItem: lambda ledger, a: remove_item(ledger, a.item_id, a.remarks),
    UpdateQuantity: lambda ledger, a: update_quantity(ledger, a.item_id, a.remarks, a.quantity),
    ClearTableOrders: lambda ledger, a: clear_table_orders(ledger, a.table_id),
    SetPlacedItems: lambda ledger, a: set_placed_items(ledger, a.table_id, a.items),
    CommitPending: lambda ledger, a: commit_pending(ledger, a.table_id, a.sent),
    Hydrate: lambda ledger, a: a.ledger,
}


def reduce(ledger: Ledger, action: Any) -> Ledger:
    """Apply one action. Unknown actions leave the ledger unchanged."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return ledger
    return handler(ledger, action)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

def active_order(ledger: Ledger) -> TableOrder:
    """The active table's order; an empty order when none is active or known."""
    if ledger.active_table_id is None:
        return EMPTY_ORDER
    return ledger.order_for(ledger.active_table_id)


def has_unsent_items(ledger: Ledger, table_id: Any) -> bool:
    return len(ledger.order_for(table_id).pending_items) > 0


def visible_placed_items(order: TableOrder) -> list[PlacedItem]:
    """Placed items worth showing: cancelled lines are hidden."""
    return [item for item in order.placed_items if not item.is_cancelled]


def pending_total(order: TableOrder) -> float:
    return round(sum(item.unit_price * item.quantity for item in order.pending_items), 2)


# =============================================================================
# SUBMISSION
# =============================================================================

def build_submission_payload(
    table_id: Any,
    items: Sequence[LineItem],
    source: str = "waiter",
) -> SubmissionPayload:
    """The kitchen's view of a batch: product id, quantity and remarks only."""
    return SubmissionPayload(
        table_id=normalize_table_id(table_id),
        items=[
            SubmissionItem(id=item.id, quantity=item.quantity, remarks=item.remarks)
            for item in items
        ],
        source=source,
    )
