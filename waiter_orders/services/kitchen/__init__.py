"""
Kitchen Service Factory

Provides a single entry point for obtaining a kitchen backend instance.
The rest of the application stays agnostic about which implementation is
being used.

Usage:
    from waiter_orders.services.kitchen import get_kitchen_service

    # Returns MockKitchenService or HttpKitchenService based on ENV_MODE
    kitchen = get_kitchen_service()

    result = await kitchen.submit_new_items(payload)

Environment Switching:
    - ENV_MODE=development → MockKitchenService (in-memory kitchen)
    - ENV_MODE=staging → HttpKitchenService
    - ENV_MODE=production → HttpKitchenService
"""

import logging
from functools import lru_cache

from waiter_orders.core.config import get_settings
from waiter_orders.services.kitchen.base import (
    BaseKitchenService,
    ClearTableResult,
    PlacedItemsResult,
    SubmissionResult,
    TablesResult,
)
from waiter_orders.services.kitchen.http import HttpKitchenService
from waiter_orders.services.kitchen.mock import MockKitchenService

logger = logging.getLogger(__name__)


@lru_cache()
def get_kitchen_service() -> BaseKitchenService:
    """
    Get the configured kitchen service instance (cached).

    Returns:
        BaseKitchenService: Configured kitchen service instance

    Raises:
        ValueError: If a real backend is required but API_BASE_URL is missing
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Kitchen Service: Using MockKitchenService (development mode)")
        return MockKitchenService(
            failure_rate=settings.mock_failure_rate,
            min_latency=settings.mock_min_latency,
            max_latency=settings.mock_max_latency,
        )

    logger.info(
        f"Kitchen Service: Using HttpKitchenService "
        f"({settings.env_mode.value} mode)"
    )
    return HttpKitchenService()


def reset_kitchen_service() -> None:
    """
    Clear the cached kitchen service instance.

    The next call to get_kitchen_service() will create a new instance.
    """
    get_kitchen_service.cache_clear()
    logger.debug("Kitchen service cache cleared")


__all__ = [
    "get_kitchen_service",
    "reset_kitchen_service",
    "BaseKitchenService",
    "SubmissionResult",
    "PlacedItemsResult",
    "TablesResult",
    "ClearTableResult",
    "MockKitchenService",
    "HttpKitchenService",
]
