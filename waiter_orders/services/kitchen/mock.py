"""
Mock Kitchen Service Implementation

Simulates the restaurant backend in memory without any network calls.
Used in development mode (ENV_MODE=development) and by the stub backend to:
    - Exercise the full submit -> reconcile flow locally
    - Run multi-waiter simulations without a server
    - Test failure handling (simulated outages)

Behavior:
    - Simulates response times (configurable latency window)
    - Randomly fails a share of calls (failure_rate)
    - Keeps every table's placed items and status like the real kitchen
"""

import asyncio
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from waiter_orders.schemas import (
    ItemStatusEnum,
    MenuProduct,
    PlacedItem,
    ProductId,
    SubmissionPayload,
    TableInfo,
    TableStatusEnum,
    normalize_table_id,
)
from waiter_orders.services.kitchen.base import (
    BaseKitchenService,
    ClearTableResult,
    PlacedItemsResult,
    SubmissionResult,
    TablesResult,
)

logger = logging.getLogger(__name__)


class MockKitchenService(BaseKitchenService):
    """
    In-memory kitchen.

    Attributes:
        failure_rate: Probability of a simulated failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> kitchen = MockKitchenService(failure_rate=0.0, min_latency=0, max_latency=0)
        >>> await kitchen.submit_new_items(payload)
        >>> (await kitchen.fetch_placed_items("5")).items
        [PlacedItem(id=1, ..., status='ordered')]
    """

    FAILURE_REASONS = [
        ("kitchen_unavailable", "Kitchen display is offline."),
        ("server_error", "The server could not process the request."),
        ("timeout", "The request timed out."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency: float = 0.1,
        max_latency: float = 0.4,
        menu: Optional[Iterable[MenuProduct]] = None,
        table_count: int = 12,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max(min_latency, max_latency)
        self.menu: dict[ProductId, MenuProduct] = {p.id: p for p in (menu or [])}
        self.submissions: list[SubmissionPayload] = []
        self._placed: dict[str, list[PlacedItem]] = {}
        self._tables: dict[str, TableInfo] = {
            str(n): TableInfo(id=n, table_name=f"T{n}") for n in range(1, table_count + 1)
        }
        self._token: Optional[str] = None

        logger.info(
            f"MockKitchenService initialized "
            f"(failure_rate={failure_rate:.0%}, latency={min_latency}-{self.max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    def set_auth_token(self, token: Optional[str]) -> None:
        self._token = token

    async def _simulate_latency(self) -> float:
        delay = random.uniform(self.min_latency, self.max_latency)
        if delay > 0:
            await asyncio.sleep(delay)
        return delay * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _table(self, table_id: str) -> TableInfo:
        table = self._tables.get(table_id)
        if table is None:
            table = TableInfo(id=table_id, table_name=f"T{table_id}")
            self._tables[table_id] = table
        return table

    def _set_table_status(self, table_id: str, status: str) -> None:
        table = self._table(table_id)
        update = {"status": status}
        if status == TableStatusEnum.AVAILABLE.value:
            update.update(waiter_id=None, waiter_name=None, table_token=None, start_time=None)
        elif table.start_time is None:
            update["start_time"] = datetime.now(timezone.utc)
        self._tables[table_id] = table.model_copy(update=update)

    def assign_table(self, table_id, waiter_id, waiter_name: Optional[str] = None) -> None:
        """Record which waiter owns a table (what the backend does on first order)."""
        table_id = normalize_table_id(table_id)
        table = self._table(table_id)
        self._tables[table_id] = table.model_copy(
            update={"waiter_id": waiter_id, "waiter_name": waiter_name}
        )

    def set_item_status(
        self,
        table_id,
        status: str,
        item_id: Optional[ProductId] = None,
    ) -> None:
        """Move placed items (all, or one product) to a new kitchen status."""
        table_id = normalize_table_id(table_id)
        self._placed[table_id] = [
            item.model_copy(update={"status": status})
            if item_id is None or item.id == item_id
            else item
            for item in self._placed.get(table_id, [])
        ]
        if status != ItemStatusEnum.CANCELLED.value:
            self._set_table_status(table_id, status)

    # ==========================================================================
    # SERVICE INTERFACE
    # ==========================================================================

    async def submit_new_items(self, payload: SubmissionPayload) -> SubmissionResult:
        elapsed_ms = await self._simulate_latency()
        table_id = normalize_table_id(payload.table_id)

        if self._should_fail():
            error_code, error_message = random.choice(self.FAILURE_REASONS)
            logger.warning(f"Mock submission failed (simulated) for table {table_id}: {error_code}")
            return SubmissionResult(
                success=False,
                table_id=table_id,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=elapsed_ms,
            )

        placed = self._placed.setdefault(table_id, [])
        for line in payload.items:
            product = self.menu.get(line.id)
            placed.append(
                PlacedItem(
                    id=line.id,
                    name=product.name if product else f"Item {line.id}",
                    unit_price=product.unit_price if product else 0.0,
                    quantity=line.quantity,
                    remarks=line.remarks,
                    status=ItemStatusEnum.ORDERED.value,
                )
            )
        self.submissions.append(payload)
        self._set_table_status(table_id, TableStatusEnum.ORDERED.value)

        order_id = f"ord_mock_{uuid.uuid4().hex[:12]}"
        logger.info(
            f"Mock kitchen accepted {len(payload.items)} line(s) for table {table_id} "
            f"(ID: {order_id})"
        )
        return SubmissionResult(
            success=True,
            table_id=table_id,
            order_id=order_id,
            response_time_ms=elapsed_ms,
            data={"order_id": order_id, "source": payload.source},
        )

    async def fetch_placed_items(self, table_id: str) -> PlacedItemsResult:
        elapsed_ms = await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock fetch failed (simulated) for table {table_id}")
            return PlacedItemsResult(
                success=False,
                table_id=table_id,
                error_message="Simulated fetch failure",
                response_time_ms=elapsed_ms,
            )

        return PlacedItemsResult(
            success=True,
            table_id=table_id,
            items=list(self._placed.get(table_id, [])),
            response_time_ms=elapsed_ms,
        )

    async def fetch_tables(self) -> TablesResult:
        await self._simulate_latency()
        if self._should_fail():
            return TablesResult(success=False, error_message="Simulated table list failure")
        return TablesResult(success=True, tables=list(self._tables.values()))

    async def clear_table(self, table_id: str) -> ClearTableResult:
        await self._simulate_latency()
        if self._should_fail():
            return ClearTableResult(
                success=False, table_id=table_id, error_message="Simulated clear failure"
            )
        self._placed.pop(table_id, None)
        self._set_table_status(table_id, TableStatusEnum.AVAILABLE.value)
        logger.info(f"Mock kitchen freed table {table_id}")
        return ClearTableResult(success=True, table_id=table_id)

    async def health_check(self) -> bool:
        return True
