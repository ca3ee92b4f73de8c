import asyncio
from typing import Optional

import pytest

from waiter_orders.core.config import Settings, get_settings
from waiter_orders.manager import LedgerManager
from waiter_orders.schemas import MenuProduct, SubmissionPayload
from waiter_orders.services.kitchen import MockKitchenService, reset_kitchen_service
from waiter_orders.services.kitchen.base import PlacedItemsResult, SubmissionResult
from waiter_orders.services.storage import MemoryStorageService, reset_storage_service

SOUP = MenuProduct(id=1, name="Soup", unit_price=4.5)
SALAD = MenuProduct(id=2, name="Caesar Salad", unit_price=8.99)
PASTA = MenuProduct(id=3, name="Pasta Carbonara", unit_price=13.99)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_singletons():
    get_settings.cache_clear()
    reset_kitchen_service()
    reset_storage_service()
    yield
    get_settings.cache_clear()
    reset_kitchen_service()
    reset_storage_service()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


def quiet_kitchen(**kwargs) -> MockKitchenService:
    """A mock kitchen with no latency and no simulated failures."""
    options = dict(failure_rate=0.0, min_latency=0.0, max_latency=0.0, menu=[SOUP, SALAD, PASTA])
    options.update(kwargs)
    return MockKitchenService(**options)


@pytest.fixture
def kitchen() -> MockKitchenService:
    return quiet_kitchen()


@pytest.fixture
def storage() -> MemoryStorageService:
    return MemoryStorageService()


@pytest.fixture
def manager(kitchen, storage, settings) -> LedgerManager:
    return LedgerManager(kitchen=kitchen, storage=storage, settings=settings)


class GatedKitchen(MockKitchenService):
    """
    Mock kitchen whose calls block until the test releases them, so tests
    can choose the order in which network calls complete.
    """

    def __init__(self, **kwargs):
        options = dict(failure_rate=0.0, min_latency=0.0, max_latency=0.0, menu=[SOUP, SALAD, PASTA])
        options.update(kwargs)
        super().__init__(**options)
        self.gate_fetches = False
        self.gate_submits = False
        self.fetch_gates: list[asyncio.Future] = []
        self.submit_gates: list[asyncio.Future] = []

    async def fetch_placed_items(self, table_id: str) -> PlacedItemsResult:
        if not self.gate_fetches:
            return await super().fetch_placed_items(table_id)
        gate = asyncio.get_running_loop().create_future()
        self.fetch_gates.append(gate)
        return await gate

    async def submit_new_items(self, payload: SubmissionPayload) -> SubmissionResult:
        if not self.gate_submits:
            return await super().submit_new_items(payload)
        gate = asyncio.get_running_loop().create_future()
        self.submit_gates.append(gate)
        await gate
        return await super().submit_new_items(payload)


async def settle(times: int = 5) -> None:
    """Let pending tasks run up to their next suspension point."""
    for _ in range(times):
        await asyncio.sleep(0)


@pytest.fixture
def gated_kitchen() -> GatedKitchen:
    return GatedKitchen()


class FailingStorage(MemoryStorageService):
    """Snapshot store whose reads and/or writes raise PersistenceFailure."""

    def __init__(self, fail_get: bool = False, fail_set: bool = False, initial: Optional[dict] = None):
        super().__init__(initial)
        self.fail_get = fail_get
        self.fail_set = fail_set

    async def get(self, key: str) -> Optional[str]:
        from waiter_orders.core.exceptions import PersistenceFailure

        if self.fail_get:
            raise PersistenceFailure(key, "store offline")
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        from waiter_orders.core.exceptions import PersistenceFailure

        if self.fail_set:
            raise PersistenceFailure(key, "disk full")
        await super().set(key, value)
