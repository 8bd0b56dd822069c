# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("FCM_SERVER_KEY", "test_server_key")

from society_app.core.notifications.service import NotificationService
from society_app.core.orders.service import OrderService
from society_app.core.payments.service import PaymentService
from tests.fakes import (
    FakeCache,
    FakeCatalogRepository,
    FakeOrderRepository,
    FakePaymentRepository,
    FakeStore,
    FakeUserRepository,
    RecordingEventBus,
)


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Тестовая конфигурация",
        "PROJECT_NAME": "society_app_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "COMPONENT_MODE": "orders_api",
        "ORDERS_API_HOST": "127.0.0.1",
        "ORDERS_API_PORT": 9080,
        "NOTIFICATIONS_HOST": "127.0.0.1",
        "NOTIFICATIONS_PORT": 9083,
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "colored",
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "society_app_test",
        "DB_USER": "postgres",
        "DB_PASSWORD": "test_password",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "DB_COMMAND_TIMEOUT": 30,
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "REDIS_PASSWORD": "",
        "REDIS_NAMESPACE": "society_test",
        "REDIS_MAX_CONNECTIONS": 10,
        "ORDER_TTL": 60,
        "WORKFLOW_TTL": 600,
        "RABBITMQ_HOST": "localhost",
        "RABBITMQ_PORT": 5672,
        "RABBITMQ_USER": "guest",
        "RABBITMQ_PASSWORD": "guest",
        "RABBITMQ_VHOST": "/",
        "RABBITMQ_EXCHANGE": "society.test",
        "RABBITMQ_PREFETCH_COUNT": 5,
        "PRICE_TOLERANCE_PERCENT": 2.5,
        "DEFAULT_TURNAROUND_HOURS": 36,
        "ORDER_NUMBER_PREFIX": "TST",
        "TRANSITION_ROLES": {
            "DELIVERED->COMPLETED": ["RESIDENT", "VENDOR"],
        },
        "ITEM_EDIT_ROLES": ["VENDOR"],
        "CURRENCY": "INR",
        "DEFAULT_PAYMENT_METHOD": "CASH",
        "FCM_URL": "https://fcm.test/send",
        "FCM_SERVER_KEY": "",
        "FCM_TIMEOUT": 5.0,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.fetchval = AsyncMock(return_value=None)
    return db


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=None)
    event_bus.subscribe = AsyncMock(return_value=None)
    event_bus.is_connected = True
    return event_bus


# =============================================================================
# СЕРВИСЫ НА IN-MEMORY РЕПОЗИТОРИЯХ
# =============================================================================

@pytest.fixture
def store() -> FakeStore:
    """Хранилище с прачечной, жителем и прайс-листом."""
    return FakeStore.seeded()


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def notifications(event_bus: RecordingEventBus) -> NotificationService:
    return NotificationService(event_bus)


@pytest.fixture
def payment_service(store: FakeStore, notifications: NotificationService) -> PaymentService:
    return PaymentService(
        repository=FakePaymentRepository(store),
        orders=FakeOrderRepository(store),
        notifications=notifications,
    )


@pytest.fixture
def order_service(
    store: FakeStore,
    notifications: NotificationService,
    payment_service: PaymentService,
    cache: FakeCache,
) -> OrderService:
    """Сервис заказов поверх FakeStore (допуск цены 1%, срок по умолчанию 48 ч)."""
    return OrderService(
        repository=FakeOrderRepository(store),
        catalog=FakeCatalogRepository(store),
        users=FakeUserRepository(store),
        payments=payment_service,
        notifications=notifications,
        cache=cache,
    )
