"""
                Waiter Order Ledger

Client-side, per-table order state for waiters: unsent items are kept apart
from items already placed with the kitchen, persisted per identity, and
reconciled against the kitchen backend.
"""

__version__ = "1.0.0"
