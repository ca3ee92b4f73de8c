"""
                        Services Module

External collaborators of the order ledger, each with an in-process and a
real implementation selected from configuration.

Services:
    - kitchen: order submission, placed-items fetch, table list
    - storage: identity-scoped snapshot store (memory, file, redis)
"""

from waiter_orders.services.kitchen import get_kitchen_service
from waiter_orders.services.storage import get_storage_service

__all__ = ["get_kitchen_service", "get_storage_service"]
