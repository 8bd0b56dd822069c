# society_app/services/orders_api/dependencies.py
"""
Dependency Injection для Orders API.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import Header

from society_app.common.constants import ACTOR_ID_HEADER, ACTOR_ROLE_HEADER
from society_app.core.errors import ValidationFailedError
from society_app.core.orders.models import Actor
from society_app.shared.models.enums import PaymentMethod, UserType

if TYPE_CHECKING:
    from society_app.infra.database import DatabaseManager
    from society_app.infra.event_bus import EventBus
    from society_app.infra.redis_client import RedisClient
    from society_app.core.orders.service import OrderService
    from society_app.core.payments.service import PaymentService


# Синглтоны для инфраструктуры
_db: "DatabaseManager | None" = None
_redis: "RedisClient | None" = None
_event_bus: "EventBus | None" = None

# Синглтоны для сервисов
_order_service: "OrderService | None" = None
_payment_service: "PaymentService | None" = None


async def init_dependencies(
    db: "DatabaseManager",
    redis: "RedisClient | None",
    event_bus: "EventBus",
) -> None:
    """Инициализировать зависимости при старте приложения."""
    global _db, _redis, _event_bus
    _db = db
    _redis = redis
    _event_bus = event_bus


def get_db() -> "DatabaseManager":
    """Получить менеджер базы данных."""
    if _db is None:
        raise RuntimeError("База данных не инициализирована. Вызовите init_dependencies()")
    return _db


def get_event_bus() -> "EventBus":
    """Получить шину событий."""
    if _event_bus is None:
        raise RuntimeError("EventBus не инициализирован. Вызовите init_dependencies()")
    return _event_bus


def get_payment_service() -> "PaymentService":
    """Получить сервис платежей."""
    global _payment_service

    if _payment_service is None:
        from society_app.config import settings
        from society_app.core.notifications.service import NotificationService
        from society_app.core.orders.repository import OrderRepository
        from society_app.core.payments.repository import PaymentRepository
        from society_app.core.payments.service import PaymentService

        db = get_db()
        _payment_service = PaymentService(
            repository=PaymentRepository(db),
            orders=OrderRepository(db),
            notifications=NotificationService(get_event_bus()),
            default_method=PaymentMethod(settings.payments.DEFAULT_PAYMENT_METHOD),
        )

    return _payment_service


def get_order_service() -> "OrderService":
    """Получить сервис заказов."""
    global _order_service

    if _order_service is None:
        from society_app.config import settings
        from society_app.core.catalog.repository import CatalogRepository
        from society_app.core.notifications.service import NotificationService
        from society_app.core.orders.pricing import PriceCalculator
        from society_app.core.orders.repository import OrderRepository
        from society_app.core.orders.service import OrderService
        from society_app.core.orders.state_machine import OrderStateMachine
        from society_app.core.users.repository import UserRepository

        db = get_db()
        _order_service = OrderService(
            repository=OrderRepository(db),
            catalog=CatalogRepository(db),
            users=UserRepository(db),
            payments=get_payment_service(),
            notifications=NotificationService(get_event_bus()),
            cache=_redis,
            state_machine=OrderStateMachine.from_settings(),
            pricing=PriceCalculator.from_settings(),
            default_turnaround_hours=settings.orders.DEFAULT_TURNAROUND_HOURS,
            order_number_prefix=settings.orders.ORDER_NUMBER_PREFIX,
            order_ttl=settings.redis_ttl.ORDER_TTL,
            workflow_ttl=settings.redis_ttl.WORKFLOW_TTL,
        )

    return _order_service


async def get_actor(
    user_id: Annotated[str | None, Header(alias=ACTOR_ID_HEADER)] = None,
    role: Annotated[str | None, Header(alias=ACTOR_ROLE_HEADER)] = None,
) -> Actor:
    """
    Актор запроса из заголовков шлюза.
    Аутентификацию выполняет шлюз, здесь только разбор.
    """
    if not user_id or not role:
        raise ValidationFailedError(
            f"Заголовки {ACTOR_ID_HEADER} и {ACTOR_ROLE_HEADER} обязательны",
            details={"headers": [ACTOR_ID_HEADER, ACTOR_ROLE_HEADER]},
        )
    try:
        user_type = UserType(role.strip().upper())
    except ValueError:
        raise ValidationFailedError(
            f"Неизвестная роль: {role}",
            details={"role": role, "allowed_roles": [r.value for r in UserType]},
        ) from None
    return Actor(user_id=user_id.strip(), role=user_type)


async def cleanup_dependencies() -> None:
    """Очистить ресурсы при остановке приложения."""
    global _order_service, _payment_service, _db, _redis, _event_bus
    _order_service = None
    _payment_service = None
    _db = None
    _redis = None
    _event_bus = None
