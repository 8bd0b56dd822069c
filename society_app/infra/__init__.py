# society_app/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними сервисами: PostgreSQL, Redis, RabbitMQ.
"""

from society_app.infra.database import DatabaseManager, get_db
from society_app.infra.redis_client import RedisClient, get_redis
from society_app.infra.event_bus import DomainEvent, EventBus, EventBusError, EventTypes, get_event_bus

__all__ = [
    "DatabaseManager",
    "get_db",
    "RedisClient",
    "get_redis",
    "DomainEvent",
    "EventBus",
    "EventBusError",
    "EventTypes",
    "get_event_bus",
]
