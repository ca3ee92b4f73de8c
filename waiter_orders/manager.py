"""
Ledger Manager

Holds the one shared ``Ledger`` of a waiter session and drives everything
around the pure reducer:

    - UI mutations (add/remove/update items, table selection, clearing)
    - Submission of pending items to the kitchen (two-phase commit)
    - Reconciliation of placed items against the kitchen
    - Identity-scoped persistence of the ledger snapshot

Concurrency model: one asyncio event loop. Reducer steps are synchronous so
two mutations never interleave; network and storage calls suspend the
caller and their results are applied on completion, keyed by the table id
captured when the call started. A later completion overwrites an earlier
one. Results that arrive after the identity changed are dropped.

Usage:
    manager = LedgerManager()
    await manager.on_identity_changed(IdentityState(token=token))
    await manager.set_active_table(5)
    await manager.add_item(soup, quantity=2)
    await manager.send_order_to_kitchen()
"""

import asyncio
import logging
from typing import Any, Optional

from waiter_orders import ledger as ops
from waiter_orders.core.config import Settings, get_settings
from waiter_orders.core.exceptions import (
    EmptyOrderError,
    PersistenceFailure,
    ReconciliationFailure,
    SubmissionFailure,
)
from waiter_orders.persistence import deserialize_ledger, serialize_ledger, storage_key
from waiter_orders.schemas import (
    IdentityState,
    Ledger,
    MenuProduct,
    ProductId,
    TableInfo,
    TableOrder,
    normalize_table_id,
)
from waiter_orders.services.kitchen import BaseKitchenService, get_kitchen_service
from waiter_orders.services.kitchen.base import ClearTableResult, SubmissionResult
from waiter_orders.services.storage import BaseStorageService, get_storage_service
from waiter_orders.tables import ClearAction, clear_action

logger = logging.getLogger(__name__)


class LedgerManager:
    """
    Stateful owner of the order ledger.

    Attributes:
        kitchen: Kitchen backend used for submission and reconciliation
        storage: Snapshot store used for persistence
    """

    def __init__(
        self,
        kitchen: Optional[BaseKitchenService] = None,
        storage: Optional[BaseStorageService] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.kitchen = kitchen or get_kitchen_service()
        self.storage = storage or get_storage_service()

        self._ledger = Ledger()
        self._token: Optional[str] = None
        self._loaded = False
        # Nothing is known until the identity layer reports in.
        self._loading = True
        self._generation = 0
        self._save_lock = asyncio.Lock()

    # ==========================================================================
    # READ SIDE
    # ==========================================================================

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def orders_by_table(self) -> dict[str, TableOrder]:
        return self._ledger.orders_by_table

    @property
    def active_table_id(self) -> Optional[str]:
        return self._ledger.active_table_id

    @property
    def active_order(self) -> TableOrder:
        return ops.active_order(self._ledger)

    @property
    def is_ledger_loading(self) -> bool:
        return self._loading

    def has_unsent_items(self, table_id: Any) -> bool:
        return ops.has_unsent_items(self._ledger, table_id)

    # ==========================================================================
    # DISPATCH
    # ==========================================================================

    def dispatch(self, action: Any) -> Ledger:
        """Apply one action to the in-memory ledger (no persistence)."""
        self._ledger = ops.reduce(self._ledger, action)
        return self._ledger

    async def _apply(self, action: Any) -> Ledger:
        ledger = self.dispatch(action)
        await self._persist()
        return ledger

    async def set_active_table(self, table_id: Any) -> Ledger:
        return await self._apply(ops.SetActiveTable(table_id))

    async def add_item(
        self,
        product: MenuProduct,
        quantity: int = 1,
        remarks: Optional[str] = "",
    ) -> Ledger:
        if self._ledger.active_table_id is None:
            logger.warning(f"add_item({product.id}) ignored: no active table")
        return await self._apply(ops.AddItem(product, quantity, remarks))

    async def remove_item(self, item_id: ProductId, remarks: Optional[str] = None) -> Ledger:
        return await self._apply(ops.RemoveItem(item_id, remarks))

    async def update_quantity(
        self,
        item_id: ProductId,
        remarks: Optional[str],
        quantity: int,
    ) -> Ledger:
        return await self._apply(ops.UpdateQuantity(item_id, remarks, quantity))

    async def clear_table_orders(self, table_id: Any) -> Ledger:
        return await self._apply(ops.ClearTableOrders(table_id))

    # ==========================================================================
    # SUBMISSION / RECONCILIATION
    # ==========================================================================

    def _resolve_table(self, table_id: Any) -> Optional[str]:
        if table_id is None:
            return self._ledger.active_table_id
        return normalize_table_id(table_id)

    async def send_order_to_kitchen(self, table_id: Any = None) -> SubmissionResult:
        """
        Submit a table's pending items (the active table by default).

        On success the submitted lines move to placed items optimistically
        and the kitchen's list is fetched to replace them. On failure the
        ledger is untouched so the waiter can retry.

        Raises:
            EmptyOrderError: Nothing pending for the table
            SubmissionFailure: The kitchen did not accept the batch
        """
        table_id = self._resolve_table(table_id)
        if table_id is None:
            raise EmptyOrderError(None)

        sent = self._ledger.order_for(table_id).pending_items
        if not sent:
            raise EmptyOrderError(table_id)

        payload = ops.build_submission_payload(table_id, sent, self.settings.order_source)
        generation = self._generation

        logger.info(f"Sending {len(sent)} line(s) for table {table_id} to the kitchen")
        result = await self.kitchen.submit_new_items(payload)

        if not result.success:
            raise SubmissionFailure(
                table_id,
                result.error_message or "unknown error",
                error_code=result.error_code,
            )

        if generation != self._generation:
            logger.info(f"Identity changed while submitting table {table_id}; not committing")
            return result

        await self._apply(ops.CommitPending(table_id, sent))
        await self.refresh_placed_items(table_id)
        return result

    async def refresh_placed_items(self, table_id: Any = None) -> bool:
        """
        Replace a table's placed items with the kitchen's current list.

        Best effort: failures are logged and the previous placed items stay.

        Returns:
            True if the placed items were replaced
        """
        table_id = self._resolve_table(table_id)
        if table_id is None:
            return False

        generation = self._generation
        result = await self.kitchen.fetch_placed_items(table_id)

        if not result.success:
            failure = ReconciliationFailure(table_id, result.error_message or "unknown error")
            logger.warning(f"{failure}; keeping previous placed items")
            return False

        if generation != self._generation:
            logger.info(f"Dropping placed items of table {table_id} fetched for a previous identity")
            return False

        await self._apply(ops.SetPlacedItems(table_id, tuple(result.items)))
        return True

    async def free_table(self, table: TableInfo, waiter_id: Any) -> ClearTableResult:
        """
        Clear a table from the table list on behalf of ``waiter_id``.

        Unsent items are discarded locally without a backend call. An
        occupied table, or the waiter's own table once served or paid, is
        marked available on the backend; the kitchen then holds nothing for
        it, so its placed items are emptied too. Anything else is refused.
        """
        table_id = normalize_table_id(table.id)
        decision = clear_action(table, waiter_id, self._ledger)

        if decision.action == ClearAction.DISCARD_UNSENT:
            await self.clear_table_orders(table_id)
            logger.info(f"Discarded unsent items of table {table_id}")
            return ClearTableResult(success=True, table_id=table_id, action=decision.action.value)

        if decision.action in (ClearAction.NOT_ALLOWED, ClearAction.NOTHING):
            return ClearTableResult(
                success=decision.action == ClearAction.NOTHING,
                table_id=table_id,
                error_message=decision.message,
                action=decision.action.value,
            )

        result = await self.kitchen.clear_table(table_id)
        result.action = decision.action.value
        if result.success:
            await self._apply(ops.SetPlacedItems(table_id, ()))
        else:
            logger.warning(f"Failed to free table {table_id}: {result.error_message}")
        return result

    # ==========================================================================
    # PERSISTENCE LIFECYCLE
    # ==========================================================================

    async def on_identity_changed(self, identity: IdentityState) -> None:
        """
        Re-scope the ledger to the identity the auth layer reports.

        - still bootstrapping: wait, touch nothing
        - no token: drop the ledger and stop persisting
        - new token: drop the ledger and load that identity's snapshot
        """
        if identity.is_bootstrapping:
            self._loading = True
            return

        token = identity.token
        if token == self._token and (self._loaded or token is None):
            self._loading = False
            return

        self._generation += 1
        generation = self._generation
        self._token = token
        self._loaded = False
        self.dispatch(ops.Hydrate(Ledger()))
        self.kitchen.set_auth_token(token)

        if token is None:
            self._loading = False
            logger.info("Signed out; ledger discarded")
            return

        self._loading = True
        snapshot = await self._load_snapshot(token)

        if generation != self._generation:
            logger.info("Discarding snapshot loaded for a superseded identity")
            return

        if snapshot is not None:
            self.dispatch(ops.Hydrate(snapshot))
            logger.info(f"Ledger restored ({len(snapshot.orders_by_table)} table(s))")
        self._loaded = True
        self._loading = False

    async def _load_snapshot(self, token: str) -> Optional[Ledger]:
        key = storage_key(token, self.settings.storage_key_prefix)
        try:
            raw = await self.storage.get(key)
        except PersistenceFailure as e:
            logger.warning(f"{e}; starting with an empty ledger")
            return None

        if raw is None:
            return None

        try:
            return deserialize_ledger(raw)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable snapshot: {e}")
            return None

    async def _persist(self) -> bool:
        """
        Write the current ledger (placed items stripped) under the identity key.

        Writes are serialized, and each one snapshots the ledger once it holds
        the lock, so the last write always carries the latest state.
        """
        if self._token is None or not self._loaded:
            return False

        generation = self._generation
        key = storage_key(self._token, self.settings.storage_key_prefix)

        async with self._save_lock:
            if generation != self._generation:
                return False
            raw = serialize_ledger(self._ledger)
            try:
                await self.storage.set(key, raw)
            except PersistenceFailure as e:
                logger.warning(f"{e}; ledger kept in memory only")
                return False
        return True
