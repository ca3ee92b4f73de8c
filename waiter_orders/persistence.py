"""
Ledger Snapshot Serialization

Snapshots are JSON documents stored under an identity-scoped key
(``waiterOrders_<token>`` by default). Placed items are never written and
are dropped again on read: the kitchen may have moved on while the app was
closed, so only a fresh reconciliation may repopulate them.
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError

from waiter_orders.core.config import get_settings
from waiter_orders.ledger import strip_placed_items
from waiter_orders.schemas import Ledger

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def storage_key(token: str, prefix: Optional[str] = None) -> str:
    """Key under which a given identity's ledger is stored."""
    if prefix is None:
        prefix = get_settings().storage_key_prefix
    return f"{prefix}{token}"


def serialize_ledger(ledger: Ledger) -> str:
    """Dump a ledger to JSON with every table's placed items emptied."""
    snapshot = strip_placed_items(ledger).model_dump(mode="json")
    snapshot["version"] = SNAPSHOT_VERSION
    return json.dumps(snapshot, separators=(",", ":"))


def deserialize_ledger(raw: str) -> Ledger:
    """
    Rebuild a ledger from a snapshot, placed items emptied.

    Raises:
        ValueError: If the snapshot is not valid JSON or has the wrong shape
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Snapshot must be a JSON object")

    version = data.pop("version", SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        logger.warning(f"Reading snapshot version {version} (expected {SNAPSHOT_VERSION})")

    try:
        ledger = Ledger.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Snapshot does not describe a ledger: {e}") from e

    return strip_placed_items(ledger)
