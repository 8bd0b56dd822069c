# society_app/infra/event_bus.py
"""
Шина событий на базе RabbitMQ (topic exchange).
Сервис заказов публикует доменные события, воркер уведомлений их потребляет.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

import aio_pika
from aio_pika import ExchangeType, Message
from aio_pika.exceptions import AMQPException
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractIncomingMessage, AbstractQueue, AbstractRobustConnection

from society_app.common.logger import log_debug, log_error, log_info


class EventBusError(RuntimeError):
    """Шина недоступна или публикация не удалась."""


# =============================================================================
# ДОМЕННЫЕ СОБЫТИЯ
# =============================================================================

def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DomainEvent:
    """Доменное событие, передаваемое через шину."""
    event_type: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_json(self) -> str:
        """Сериализует событие в JSON."""
        return json.dumps(
            {
                "event_id": self.event_id,
                "event_type": self.event_type,
                "timestamp": self.timestamp,
                "payload": self.payload,
            },
            ensure_ascii=False,
            default=str,
        )

    @classmethod
    def from_json(cls, data: str | bytes) -> DomainEvent:
        """Десериализует событие из JSON."""
        parsed = json.loads(data)
        if not isinstance(parsed, dict):
            raise ValueError("Событие должно быть JSON объектом")
        return cls(
            event_id=parsed.get("event_id") or str(uuid4()),
            event_type=parsed.get("event_type", ""),
            timestamp=parsed.get("timestamp", ""),
            payload=parsed.get("payload") or {},
        )


class EventTypes:
    """Константы типов событий (routing keys)."""
    ORDER_CREATED = "order.created"
    ORDER_STATUS_CHANGED = "order.status_changed"
    ORDER_SERVICE_STATUS_CHANGED = "order.service_status_changed"
    PAYMENT_STATUS_CHANGED = "payment.status_changed"


EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    """
    Шина событий на базе RabbitMQ (Singleton).

    - publish: событие уходит в exchange с routing_key = event_type
    - subscribe: очередь привязывается к exchange по каждому event_type,
      обработчики выбираются по event_type входящего события
    """

    _instance: EventBus | None = None

    def __new__(cls) -> EventBus:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, "_initialized", False):
            return
        self._initialized = True
        self._connection: AbstractRobustConnection | None = None
        self._channel: AbstractChannel | None = None
        self._exchange: AbstractExchange | None = None
        self._exchange_name = "society.events"
        self._queues: dict[str, AbstractQueue] = {}
        # queue_name -> event_type -> обработчики
        self._handlers: dict[str, dict[str, list[EventHandler]]] = {}

    @property
    def is_connected(self) -> bool:
        """Проверяет, активно ли соединение."""
        return self._connection is not None and not self._connection.is_closed

    async def connect(
        self,
        url: str,
        exchange_name: str | None = None,
        prefetch_count: int = 10,
    ) -> None:
        """
        Подключается к RabbitMQ и объявляет topic exchange.

        Args:
            url: URL RabbitMQ
            exchange_name: Имя exchange
            prefetch_count: Количество сообщений для prefetch
        """
        if self.is_connected:
            return
        if exchange_name:
            self._exchange_name = exchange_name

        await log_info("Подключение к RabbitMQ...", logger_name="event_bus")

        self._connection = await aio_pika.connect_robust(url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=prefetch_count)
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            ExchangeType.TOPIC,
            durable=True,
        )

        await log_info("Подключение к RabbitMQ установлено", logger_name="event_bus")

    async def disconnect(self) -> None:
        """Закрывает соединение с RabbitMQ."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
            self._exchange = None
            self._queues = {}
            self._handlers = {}
            await log_info("Соединение с RabbitMQ закрыто", logger_name="event_bus")

    async def publish(self, event: DomainEvent) -> None:
        """
        Публикует событие в exchange.

        Raises:
            EventBusError: нет соединения или брокер отклонил сообщение
        """
        if not self.is_connected or self._exchange is None:
            raise EventBusError(f"Нет соединения с RabbitMQ, событие {event.event_type} не отправлено")

        message = Message(
            body=event.to_json().encode("utf-8"),
            content_type="application/json",
            message_id=event.event_id,
            timestamp=datetime.now(timezone.utc),
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        try:
            await self._exchange.publish(message, routing_key=event.event_type)
        except (AMQPException, ConnectionError) as e:
            raise EventBusError(f"Ошибка публикации {event.event_type}: {e}") from e

        await log_debug(f"Событие опубликовано: {event.event_type} ({event.event_id})", logger_name="event_bus")

    async def subscribe(
        self,
        event_type: str,
        handler: EventHandler,
        queue_name: str | None = None,
    ) -> None:
        """
        Подписывает обработчик на события типа event_type.
        Несколько типов могут делить одну очередь (queue_name).

        Raises:
            EventBusError: нет соединения с RabbitMQ
        """
        if not self.is_connected or self._channel is None or self._exchange is None:
            raise EventBusError(f"Нет соединения с RabbitMQ, подписка на {event_type} невозможна")

        if queue_name is None:
            queue_name = f"society.{event_type.replace('.', '_')}"

        by_type = self._handlers.setdefault(queue_name, {})
        is_new_binding = event_type not in by_type
        by_type.setdefault(event_type, []).append(handler)

        queue = self._queues.get(queue_name)
        if queue is None:
            queue = await self._channel.declare_queue(queue_name, durable=True)
            self._queues[queue_name] = queue
            await queue.consume(self._make_consumer(queue_name))

        if is_new_binding:
            await queue.bind(self._exchange, routing_key=event_type)

        await log_debug(f"Подписка на события: {event_type} -> {queue_name}", logger_name="event_bus")

    def _make_consumer(self, queue_name: str) -> Callable[[AbstractIncomingMessage], Awaitable[None]]:
        """Создаёт consumer очереди: разбирает событие и вызывает обработчики его типа."""
        async def consumer(message: AbstractIncomingMessage) -> None:
            async with message.process(requeue=False):
                try:
                    event = DomainEvent.from_json(message.body)
                except ValueError as e:
                    await log_error(f"Некорректное сообщение в {queue_name}: {e}", logger_name="event_bus")
                    return

                for handler in self._handlers.get(queue_name, {}).get(event.event_type, []):
                    try:
                        await handler(event)
                    except Exception as e:
                        # Ошибка одного обработчика не мешает остальным
                        await log_error(
                            f"Ошибка в обработчике {getattr(handler, '__name__', handler)} "
                            f"для {event.event_type}: {e}",
                            logger_name="event_bus",
                            exc_info=True,
                        )

        return consumer

    async def health_check(self) -> bool:
        """Проверяет здоровье подключения к RabbitMQ."""
        return self.is_connected


# =============================================================================
# ГЛОБАЛЬНЫЙ ЭКЗЕМПЛЯР
# =============================================================================

_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Возвращает глобальный экземпляр EventBus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


async def init_event_bus() -> EventBus:
    """Инициализирует подключение к RabbitMQ по настройкам."""
    from society_app.config import settings

    cfg = settings.rabbitmq
    bus = get_event_bus()
    await bus.connect(
        url=cfg.url,
        exchange_name=cfg.RABBITMQ_EXCHANGE,
        prefetch_count=cfg.RABBITMQ_PREFETCH_COUNT,
    )
    await log_info(f"RabbitMQ подключён: {cfg.RABBITMQ_HOST}:{cfg.RABBITMQ_PORT}", logger_name="event_bus")
    return bus


async def close_event_bus() -> None:
    """Закрывает подключение к RabbitMQ."""
    await get_event_bus().disconnect()
