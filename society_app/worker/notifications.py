# society_app/worker/notifications.py
"""
Воркер отправки push-уведомлений по событиям заказов и платежей.
"""

from __future__ import annotations

from typing import Any, List, Optional

from society_app.common.logger import log_debug, log_warning
from society_app.core.notifications.rules import PushMessage, Recipient, build_messages
from society_app.core.users.repository import UserRepository
from society_app.infra.event_bus import DomainEvent, EventBus, EventTypes
from society_app.notifications.push import PushForwarder
from society_app.shared.models.api import NotificationRequest
from society_app.worker.base import BaseWorker


class NotificationWorker(BaseWorker):
    """
    Воркер для отправки уведомлений.
    Определяет адресатов события (житель, исполнитель), находит их user_id
    и вызывает PushForwarder один раз на адресата.
    """

    def __init__(
        self,
        forwarder: PushForwarder,
        users: Optional[UserRepository] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        super().__init__(event_bus=event_bus)
        self._forwarder = forwarder
        if users is None:
            from society_app.infra.database import get_db

            users = UserRepository(get_db())
        self._users = users

    @property
    def name(self) -> str:
        return "NotificationWorker"

    @property
    def subscriptions(self) -> List[str]:
        return [
            EventTypes.ORDER_CREATED,
            EventTypes.ORDER_STATUS_CHANGED,
            EventTypes.PAYMENT_STATUS_CHANGED,
        ]

    async def handle_event(self, event: DomainEvent) -> None:
        """Обрабатывает событие."""
        for message in build_messages(event):
            await self._deliver(message, event.payload)

    async def _resolve_user_id(self, recipient: Recipient, payload: dict[str, Any]) -> str | None:
        if recipient == Recipient.RESIDENT:
            resident_id = payload.get("resident_id")
            return await self._users.get_resident_user_id(resident_id) if resident_id else None
        vendor_id = payload.get("vendor_id")
        return await self._users.get_vendor_user_id(vendor_id) if vendor_id else None

    async def _deliver(self, message: PushMessage, payload: dict[str, Any]) -> bool:
        """
        Отправляет одно уведомление адресату.

        Returns:
            True если FCM принял запрос
        """
        user_id = await self._resolve_user_id(message.recipient, payload)
        if user_id is None:
            await log_warning(
                f"Не найден пользователь для {message.recipient.value} "
                f"(заказ {payload.get('order_id')})",
                logger_name="worker",
            )
            return False

        status_code, body = await self._forwarder.send(
            NotificationRequest(
                user_id=user_id,
                title=message.title,
                body=message.body,
                data=message.data,
            )
        )
        if status_code != 200:
            await log_warning(
                f"Push {message.recipient.value} {user_id} не доставлен: {body.get('error')}",
                logger_name="worker",
            )
            return False

        await log_debug(f"Push {message.recipient.value} {user_id}: {message.title}", logger_name="worker")
        return True
