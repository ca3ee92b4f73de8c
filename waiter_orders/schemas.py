"""
Pydantic Schemas for the Waiter Order Ledger

- Menu products and line items (pending and placed)
- Per-table orders and the ledger itself
- The submission payload sent to the kitchen backend
- Identity and table-list records consumed from collaborators

All ledger models are frozen: every transition builds new instances.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


ProductId = Union[int, str]


def normalize_remarks(remarks: Optional[str]) -> Optional[str]:
    """Treat "" and None as the same "no remarks" value."""
    return remarks or None


def normalize_table_id(table_id: Any) -> Optional[str]:
    """Table ids are opaque; keep them as strings so JSON keys round-trip."""
    if table_id is None:
        return None
    return str(table_id)


def wire_table_id(table_id: Any) -> Optional[ProductId]:
    """Canonical numeric ids ("5", not "05") go to the backend as numbers."""
    if isinstance(table_id, str) and table_id.isascii() and table_id.isdigit():
        if str(int(table_id)) == table_id:
            return int(table_id)
    return table_id


# =============================================================================
# ENUMS
# =============================================================================

class ItemStatusEnum(str, Enum):
    """Statuses the kitchen reports for placed items (others pass through)."""
    ORDERED = "ordered"
    PREPARING = "preparing"
    SERVED = "served"
    CANCELLED = "cancelled"


class TableStatusEnum(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    ORDERED = "ordered"
    PREPARING = "preparing"
    SERVED = "served"
    BILL_PAID = "bill_paid"


# =============================================================================
# MENU / LINE ITEMS
# =============================================================================

class MenuProduct(BaseModel):
    """A product reference as the menu returns it."""
    model_config = ConfigDict(frozen=True)

    id: ProductId
    name: str = Field(..., min_length=1, examples=["Soup"])
    unit_price: float = Field(
        ..., ge=0, validation_alias=AliasChoices("unit_price", "price"), examples=[4.5]
    )


class LineItem(BaseModel):
    """A product with quantity and an optional customization note."""
    model_config = ConfigDict(frozen=True)

    id: ProductId
    name: str
    unit_price: float = Field(..., ge=0, validation_alias=AliasChoices("unit_price", "price"))
    quantity: int = Field(..., ge=1, validation_alias=AliasChoices("quantity", "qty"))
    remarks: Optional[str] = None

    @field_validator("remarks", mode="before")
    @classmethod
    def empty_remarks_to_none(cls, v: Optional[str]) -> Optional[str]:
        return normalize_remarks(v)

    @property
    def key(self) -> tuple[ProductId, Optional[str]]:
        """Merge identity: same product with the same remarks."""
        return (self.id, self.remarks)

    @property
    def total_price(self) -> float:
        return round(self.quantity * self.unit_price, 2)

    @classmethod
    def from_product(
        cls,
        product: MenuProduct,
        quantity: int,
        remarks: Optional[str] = None,
    ) -> "LineItem":
        return cls(
            id=product.id,
            name=product.name,
            unit_price=product.unit_price,
            quantity=quantity,
            remarks=remarks,
        )


class PlacedItem(LineItem):
    """A line item the kitchen has confirmed, with its server-side status."""

    name: str = ""
    unit_price: float = Field(0.0, ge=0, validation_alias=AliasChoices("unit_price", "price"))
    quantity: int = Field(..., ge=0, validation_alias=AliasChoices("quantity", "qty"))
    status: str = ItemStatusEnum.ORDERED.value

    @property
    def is_cancelled(self) -> bool:
        return self.status == ItemStatusEnum.CANCELLED.value

    @classmethod
    def from_line_item(
        cls,
        item: LineItem,
        status: str = ItemStatusEnum.ORDERED.value,
    ) -> "PlacedItem":
        return cls(
            id=item.id,
            name=item.name,
            unit_price=item.unit_price,
            quantity=item.quantity,
            remarks=item.remarks,
            status=status,
        )


# =============================================================================
# LEDGER
# =============================================================================

class TableOrder(BaseModel):
    """Order state of one table: unsent items and kitchen-confirmed items."""
    model_config = ConfigDict(frozen=True)

    pending_items: tuple[LineItem, ...] = ()
    placed_items: tuple[PlacedItem, ...] = ()


EMPTY_ORDER = TableOrder()


class Ledger(BaseModel):
    """Every table's order plus the table the UI is looking at."""
    model_config = ConfigDict(frozen=True)

    orders_by_table: dict[str, TableOrder] = Field(default_factory=dict)
    active_table_id: Optional[str] = None

    @field_validator("orders_by_table", mode="before")
    @classmethod
    def stringify_table_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {normalize_table_id(k): order for k, order in v.items()}
        return v

    @field_validator("active_table_id", mode="before")
    @classmethod
    def stringify_active_table(cls, v: Any) -> Optional[str]:
        return normalize_table_id(v)

    def order_for(self, table_id: Any) -> TableOrder:
        """The table's order, or an empty one when it was never touched."""
        return self.orders_by_table.get(normalize_table_id(table_id), EMPTY_ORDER)


# =============================================================================
# KITCHEN SUBMISSION
# =============================================================================

class SubmissionItem(BaseModel):
    """Single line of a kitchen submission."""
    id: ProductId
    quantity: int = Field(..., ge=1, validation_alias=AliasChoices("quantity", "qty"))
    remarks: Optional[str] = None


class SubmissionPayload(BaseModel):
    """
    Batch of new items for one table.

    Wire shape (camelCase is the backend's contract):
        {"tableId": 5, "items": [{"id": 1, "quantity": 2, "remarks": null}],
         "source": "waiter"}
    """
    table_id: ProductId = Field(
        ...,
        validation_alias=AliasChoices("tableId", "table_id"),
        serialization_alias="tableId",
    )
    items: list[SubmissionItem] = Field(..., min_length=1)
    source: str = "waiter"

    @field_validator("table_id", mode="before")
    @classmethod
    def numeric_table_id(cls, v: Any) -> Optional[ProductId]:
        return wire_table_id(normalize_table_id(v))

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# =============================================================================
# COLLABORATOR RECORDS
# =============================================================================

class IdentityState(BaseModel):
    """What the identity layer reports: the current token and whether it is
    still restoring/validating one."""
    model_config = ConfigDict(frozen=True)

    token: Optional[str] = None
    is_bootstrapping: bool = False


class TableInfo(BaseModel):
    """One row of the backend's table-status list."""
    id: ProductId
    table_name: str
    status: str = TableStatusEnum.AVAILABLE.value
    waiter_id: Optional[ProductId] = None
    waiter_name: Optional[str] = None
    table_token: Optional[str] = None
    start_time: Optional[datetime] = None
