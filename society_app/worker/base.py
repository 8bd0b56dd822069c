# society_app/worker/base.py
"""
Базовый класс для воркеров.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from society_app.common.constants import TypeMsg
from society_app.common.logger import log_error, log_info
from society_app.infra.event_bus import DomainEvent, EventBus, get_event_bus


class BaseWorker(ABC):
    """
    Базовый класс для всех воркеров.
    Подписывается на события и обрабатывает их.
    Все подписки воркера делят одну очередь (queue_name).
    """

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        """
        Инициализирует воркер.

        Args:
            event_bus: Шина событий
        """
        self.event_bus = event_bus or get_event_bus()
        self._running = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя воркера."""

    @property
    @abstractmethod
    def subscriptions(self) -> List[str]:
        """Список типов событий для подписки."""

    @property
    def queue_name(self) -> str:
        return f"society.worker.{self.name.lower()}"

    @property
    def is_running(self) -> bool:
        return self._running

    @abstractmethod
    async def handle_event(self, event: DomainEvent) -> None:
        """
        Обрабатывает событие.

        Args:
            event: Доменное событие
        """

    async def start(self) -> None:
        """Запускает воркер."""
        if self._running:
            return

        self._running = True
        await log_info(f"Воркер {self.name} запускается...", logger_name="worker")

        for event_type in self.subscriptions:
            await self.event_bus.subscribe(
                event_type=event_type,
                handler=self._on_event,
                queue_name=self.queue_name,
            )
            await log_info(
                f"Воркер {self.name} подписан на {event_type}",
                type_msg=TypeMsg.DEBUG,
                logger_name="worker",
            )

        await log_info(f"Воркер {self.name} запущен", logger_name="worker")

    async def stop(self) -> None:
        """Останавливает воркер. Новые события после остановки игнорируются."""
        if not self._running:
            return

        self._running = False
        await log_info(f"Воркер {self.name} остановлен", logger_name="worker")

    async def _on_event(self, event: DomainEvent) -> None:
        if not self._running:
            return

        try:
            await log_info(
                f"Воркер {self.name} получил событие {event.event_type}",
                type_msg=TypeMsg.DEBUG,
                logger_name="worker",
            )
            await self.handle_event(event)
        except Exception as e:
            await log_error(
                f"Ошибка в воркере {self.name}: {e}",
                logger_name="worker",
                extra={"event_type": event.event_type, "payload": event.payload},
                exc_info=True,
            )
