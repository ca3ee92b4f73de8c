"""
Core module initialization.
Exports configuration, logging and the ledger error taxonomy.
"""

from waiter_orders.core.config import (
    get_settings,
    setup_logging,
    Settings,
    EnvironmentMode,
    StorageBackend,
)
from waiter_orders.core.exceptions import (
    LedgerError,
    EmptyOrderError,
    SubmissionFailure,
    ReconciliationFailure,
    PersistenceFailure,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "StorageBackend",
    "LedgerError",
    "EmptyOrderError",
    "SubmissionFailure",
    "ReconciliationFailure",
    "PersistenceFailure",
]
