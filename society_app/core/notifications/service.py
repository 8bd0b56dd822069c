# society_app/core/notifications/service.py
"""
Сервис уведомлений.
Публикует доменные события заказов и платежей в шину;
доставку push выполняет воркер уведомлений.
"""

from __future__ import annotations

from typing import Any

from society_app.common.logger import log_debug, log_error
from society_app.infra.event_bus import DomainEvent, EventBus, EventTypes
from society_app.shared.models.enums import OrderStatus, PaymentStatus, UserType
from society_app.shared.models.order import Order
from society_app.shared.models.payment import Payment


class NotificationService:
    """
    Публикатор событий (fire-and-forget).

    Любая ошибка публикации логируется и не выходит за пределы сервиса:
    изменение заказа не должно откатываться из-за уведомлений.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus

    async def publish(self, event_type: str, payload: dict[str, Any]) -> bool:
        """
        Публикует событие.

        Returns:
            True, если событие ушло в шину
        """
        try:
            await self._event_bus.publish(DomainEvent(event_type=event_type, payload=payload))
        except Exception as e:
            await log_error(
                f"Событие {event_type} не опубликовано: {e}",
                logger_name="notifications",
                extra={"payload": payload},
            )
            return False

        await log_debug(f"Событие {event_type} поставлено в очередь", logger_name="notifications")
        return True

    async def order_created(self, order: Order) -> bool:
        return await self.publish(EventTypes.ORDER_CREATED, _order_payload(order))

    async def order_status_changed(
        self,
        order: Order,
        previous_status: OrderStatus,
        actor_role: UserType | None = None,
    ) -> bool:
        payload = _order_payload(order)
        payload["previous_status"] = previous_status.value
        if actor_role is not None:
            payload["actor_role"] = actor_role.value
        return await self.publish(EventTypes.ORDER_STATUS_CHANGED, payload)

    async def order_service_status_changed(
        self,
        order: Order,
        service_id: int,
        previous_status: OrderStatus,
        new_status: OrderStatus,
    ) -> bool:
        payload = _order_payload(order)
        payload.update(
            service_id=service_id,
            previous_service_status=previous_status.value,
            service_status=new_status.value,
        )
        return await self.publish(EventTypes.ORDER_SERVICE_STATUS_CHANGED, payload)

    async def payment_status_changed(
        self,
        payment: Payment,
        order: Order | None,
        previous_status: PaymentStatus | None,
    ) -> bool:
        payload: dict[str, Any] = {
            "payment_id": payment.payment_id,
            "order_id": payment.order_id,
            "amount": str(payment.amount),
            "payment_status": payment.payment_status.value,
            "previous_status": previous_status.value if previous_status else None,
        }
        if order is not None:
            payload.update(
                order_number=order.order_number,
                resident_id=order.resident_id,
                vendor_id=order.vendor_id,
            )
        return await self.publish(EventTypes.PAYMENT_STATUS_CHANGED, payload)


def _order_payload(order: Order) -> dict[str, Any]:
    return {
        "order_id": order.order_id,
        "order_number": order.order_number,
        "resident_id": order.resident_id,
        "vendor_id": order.vendor_id,
        "society_id": order.society_id,
        "status": order.status.value,
        "estimated_price": str(order.estimated_price),
    }
