"""
Kitchen Backend Service Abstract Base Class

Defines the interface contract the ledger consumes from the restaurant
backend:
    - submit a batch of new items for a table
    - fetch the authoritative list of items already placed for a table
    - list tables with their status, and free a table

Both MockKitchenService and HttpKitchenService implement these methods and
report outcomes through the result dataclasses below rather than raising,
so the ledger decides what each failure means.

Design Pattern: Strategy Pattern
    - MockKitchenService runs an in-memory kitchen (development, tests)
    - HttpKitchenService talks to the real API
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from waiter_orders.schemas import PlacedItem, SubmissionPayload, TableInfo


@dataclass
class SubmissionResult:
    """
    Standardized result from submitting a batch to the kitchen.

    Attributes:
        success: Whether the kitchen accepted the batch
        table_id: Table the batch was for
        order_id: Backend identifier of the created order, if returned
        error_message: Error description if the submission failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the call
        data: Raw response body
    """
    success: bool
    table_id: Optional[str] = None
    order_id: Optional[Any] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    data: Optional[dict] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "table_id": self.table_id,
            "order_id": self.order_id,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": self.response_time_ms,
        }


@dataclass
class PlacedItemsResult:
    """Result from fetching a table's placed items."""
    success: bool
    table_id: Optional[str] = None
    items: list[PlacedItem] = field(default_factory=list)
    error_message: Optional[str] = None
    response_time_ms: float = 0.0


@dataclass
class TablesResult:
    """Result from listing tables."""
    success: bool
    tables: list[TableInfo] = field(default_factory=list)
    error_message: Optional[str] = None


@dataclass
class ClearTableResult:
    """
    Result from freeing a table.

    ``action`` is set by ``LedgerManager.free_table`` to the clear action it
    took (discard_unsent, free, clear, not_allowed or nothing).
    """
    success: bool
    table_id: Optional[str] = None
    error_message: Optional[str] = None
    action: Optional[str] = None


class BaseKitchenService(ABC):
    """
    Abstract base class for kitchen backend services.

    Example:
        >>> service = get_kitchen_service()  # Mock or HTTP
        >>> result = await service.submit_new_items(payload)
        >>> if result.success:
        ...     placed = await service.fetch_placed_items(payload.table_id)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the backend provider.

        Returns:
            str: Provider name (e.g., "mock", "http")
        """
        pass

    def set_auth_token(self, token: Optional[str]) -> None:
        """Use ``token`` for subsequent calls (no-op for unauthenticated backends)."""
        return None

    @abstractmethod
    async def submit_new_items(self, payload: SubmissionPayload) -> SubmissionResult:
        """
        Send a batch of new line items for one table.

        Args:
            payload: Table id, items (id, quantity, remarks) and source tag

        Returns:
            SubmissionResult: success flag plus backend details
        """
        pass

    @abstractmethod
    async def fetch_placed_items(self, table_id: str) -> PlacedItemsResult:
        """
        Retrieve every item already placed for a table, with its status.

        Args:
            table_id: Table to look up

        Returns:
            PlacedItemsResult: The authoritative list when successful
        """
        pass

    @abstractmethod
    async def fetch_tables(self) -> TablesResult:
        """List all tables with status and assigned waiter."""
        pass

    @abstractmethod
    async def clear_table(self, table_id: str) -> ClearTableResult:
        """Mark a table as available again."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the backend.

        Returns:
            bool: True if the backend is reachable
        """
        pass
