"""
Table List Helpers

Derived views over the backend's table list that depend on the ledger:
    - "my tables": assigned to this waiter, or holding unsent local items
      (so a table is not lost from view just because the backend has not
      assigned it yet)
    - "ready" tables: this waiter's tables whose status moved from
      preparing to served since the previous poll
    - table actions: whether a waiter may order at a table, and what
      clearing it from the list does

``TableMonitor`` polls the kitchen service and keeps the previous list to
detect those transitions.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence

from waiter_orders.core.config import get_settings
from waiter_orders.ledger import has_unsent_items
from waiter_orders.schemas import Ledger, TableInfo, TableStatusEnum
from waiter_orders.services.kitchen.base import BaseKitchenService

logger = logging.getLogger(__name__)

_CLEARABLE_STATUSES = (TableStatusEnum.SERVED.value, TableStatusEnum.BILL_PAID.value)


@dataclass
class TableBoard:
    """One refresh of the table list, split for display."""
    my_tables: list[TableInfo] = field(default_factory=list)
    other_tables: list[TableInfo] = field(default_factory=list)
    ready_tables: list[TableInfo] = field(default_factory=list)


def _same_waiter(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def partition_tables(
    tables: Sequence[TableInfo],
    waiter_id: Any,
    ledger: Ledger,
) -> tuple[list[TableInfo], list[TableInfo]]:
    """Split tables into (mine, others); unsent local items make a table mine."""
    mine: list[TableInfo] = []
    others: list[TableInfo] = []
    for table in tables:
        if _same_waiter(table.waiter_id, waiter_id) or has_unsent_items(ledger, table.id):
            mine.append(table)
        else:
            others.append(table)
    return mine, others


def detect_ready_tables(
    previous: Sequence[TableInfo],
    current: Sequence[TableInfo],
    waiter_id: Any,
) -> list[TableInfo]:
    """The waiter's tables that went from preparing to served between two polls."""
    before = {str(table.id): table for table in previous}
    ready = []
    for table in current:
        old = before.get(str(table.id))
        if (
            old is not None
            and _same_waiter(table.waiter_id, waiter_id)
            and old.status == TableStatusEnum.PREPARING.value
            and table.status == TableStatusEnum.SERVED.value
        ):
            ready.append(table)
    return ready


# =============================================================================
# TABLE ACTIONS
# =============================================================================

class ClearAction(str, Enum):
    """What clearing a table from the table list amounts to."""
    DISCARD_UNSENT = "discard_unsent"
    FREE = "free"
    CLEAR = "clear"
    NOT_ALLOWED = "not_allowed"
    NOTHING = "nothing"


@dataclass
class ClearDecision:
    action: ClearAction
    message: Optional[str] = None


def table_lock_reason(table: TableInfo, waiter_id: Any) -> Optional[str]:
    """
    Why this waiter may not order at a table, or None when they may.

    A table is locked while another waiter serves it or while a customer
    holds it through their own table token.
    """
    if table.waiter_id is not None and not _same_waiter(table.waiter_id, waiter_id):
        return "This table is being served by another waiter."
    if table.table_token:
        return "This table is being used by a customer."
    return None


def clear_action(table: TableInfo, waiter_id: Any, ledger: Ledger) -> ClearDecision:
    """
    Decide what a clear request on ``table`` does, checked in order:

        1. unsent local items: discard them, no backend call
        2. status occupied: free the table on the backend
        3. the waiter's own table once served or paid: clear it on the backend
        4. any other busy table: not allowed
        5. available table: nothing to do
    """
    if has_unsent_items(ledger, table.id):
        return ClearDecision(ClearAction.DISCARD_UNSENT)

    if table.status == TableStatusEnum.OCCUPIED.value:
        return ClearDecision(ClearAction.FREE)

    is_mine = _same_waiter(table.waiter_id, waiter_id)
    if is_mine and table.status in _CLEARABLE_STATUSES:
        return ClearDecision(ClearAction.CLEAR)

    if table.status != TableStatusEnum.AVAILABLE.value:
        if not is_mine and table.waiter_name:
            message = (
                f"This table is assigned to {table.waiter_name}. "
                f"Only they can perform actions on it at this stage."
            )
        else:
            message = (
                f"This table has active kitchen orders ({table.status}) "
                f"and cannot be cleared right now."
            )
        return ClearDecision(ClearAction.NOT_ALLOWED, message)

    return ClearDecision(ClearAction.NOTHING)


class TableMonitor:
    """Polls the table list for one waiter."""

    def __init__(
        self,
        kitchen: BaseKitchenService,
        waiter_id: Any,
        ledger_source: Callable[[], Ledger],
    ):
        self.kitchen = kitchen
        self.waiter_id = waiter_id
        self._ledger_source = ledger_source
        self._previous: list[TableInfo] = []

    async def refresh(self) -> Optional[TableBoard]:
        """Fetch once. Returns None when the table list could not be loaded."""
        result = await self.kitchen.fetch_tables()
        if not result.success:
            logger.error(f"Failed to fetch tables: {result.error_message}")
            return None

        mine, others = partition_tables(result.tables, self.waiter_id, self._ledger_source())
        ready = detect_ready_tables(self._previous, result.tables, self.waiter_id)
        self._previous = list(result.tables)

        if ready:
            names = ", ".join(table.table_name for table in ready)
            logger.info(f"Orders are ready for pickup at: {names}")
        return TableBoard(my_tables=mine, other_tables=others, ready_tables=ready)

    async def watch(
        self,
        on_update: Callable[[TableBoard], Awaitable[None]],
        stop: asyncio.Event,
        interval: Optional[float] = None,
    ) -> None:
        """
        Refresh every ``interval`` seconds until ``stop`` is set.

        ``interval`` defaults to TABLE_POLL_INTERVAL_SECONDS.
        """
        if interval is None:
            interval = get_settings().table_poll_interval_seconds
        while not stop.is_set():
            board = await self.refresh()
            if board is not None:
                await on_update(board)
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
