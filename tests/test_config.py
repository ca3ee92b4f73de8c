import pytest
from pydantic import ValidationError

from waiter_orders.core.config import (
    EnvironmentMode,
    Settings,
    StorageBackend,
    get_settings,
    setup_logging,
)
from waiter_orders.services.kitchen import MockKitchenService, get_kitchen_service


def test_defaults(settings):
    assert settings.env_mode == EnvironmentMode.DEVELOPMENT
    assert settings.is_development
    assert not settings.use_real_services
    assert settings.storage_backend == StorageBackend.MEMORY
    assert settings.storage_key_prefix == "waiterOrders_"
    assert settings.order_source == "waiter"
    assert settings.api_base_url is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "PRODUCTION")
    monkeypatch.setenv("STORAGE_BACKEND", "Redis")
    monkeypatch.setenv("API_BASE_URL", "http://kitchen.local/api/")
    monkeypatch.setenv("TABLE_POLL_INTERVAL_SECONDS", "3.5")

    settings = get_settings()

    assert settings.is_production
    assert settings.use_real_services
    assert settings.storage_backend == StorageBackend.REDIS
    assert settings.api_base_url == "http://kitchen.local/api"
    assert settings.table_poll_interval_seconds == 3.5
    assert settings.validate_production_config() == []


def test_get_settings_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("ORDER_SOURCE", "kiosk")
    assert get_settings() is first

    get_settings.cache_clear()
    assert get_settings().order_source == "kiosk"


def test_invalid_env_mode_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, env_mode="chaos")


def test_invalid_storage_backend_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, storage_backend="floppy")


def test_production_config_reports_missing_keys():
    settings = Settings(_env_file=None, env_mode="staging", api_base_url="")
    assert settings.validate_production_config() == ["API_BASE_URL", "STORAGE_BACKEND"]


def test_development_config_needs_nothing(settings):
    assert settings.validate_production_config() == []


def test_mock_kitchen_in_development(monkeypatch):
    monkeypatch.setenv("MOCK_FAILURE_RATE", "0.25")

    kitchen = get_kitchen_service()

    assert isinstance(kitchen, MockKitchenService)
    assert kitchen.failure_rate == 0.25
    assert get_kitchen_service() is kitchen


def test_setup_logging_returns_package_logger():
    assert setup_logging().name == "waiter_orders"
