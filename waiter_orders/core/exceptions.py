"""
Ledger Error Taxonomy

Every failure the order ledger can surface to its caller. None of them
leaves the ledger partially mutated: an operation either applies fully or
not at all.

    LedgerError
     ├── EmptyOrderError        nothing pending to send (user prompt, no state change)
     ├── SubmissionFailure      backend rejected the batch (pending kept for retry)
     ├── ReconciliationFailure  placed-items fetch failed (stale view kept, logged)
     └── PersistenceFailure     snapshot store read/write failed
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all order ledger errors."""


class EmptyOrderError(LedgerError):
    """Raised when a submission is attempted with no pending items."""

    def __init__(self, table_id: Optional[str]):
        self.table_id = table_id
        super().__init__(
            f"No new items to send to the kitchen for table {table_id}"
        )


class SubmissionFailure(LedgerError):
    """Raised when the kitchen backend did not accept a batch."""

    def __init__(
        self,
        table_id: str,
        message: str,
        error_code: Optional[str] = None,
    ):
        self.table_id = table_id
        self.error_code = error_code
        super().__init__(f"Failed to submit order for table {table_id}: {message}")


class ReconciliationFailure(LedgerError):
    """Raised (and normally only logged) when placed items cannot be fetched."""

    def __init__(self, table_id: str, message: str):
        self.table_id = table_id
        super().__init__(f"Could not refresh placed items for table {table_id}: {message}")


class PersistenceFailure(LedgerError):
    """Raised by storage services when the snapshot store is unavailable."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Snapshot store error for '{key}': {message}")
