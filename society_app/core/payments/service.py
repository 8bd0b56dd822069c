# society_app/core/payments/service.py
"""
Сервис платежей.
Платёж создаётся, когда заказ доставлен, и меняется только колбэком платёжного шлюза.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from society_app.common.logger import log_info
from society_app.core.errors import ConflictError, InvalidTransitionError, NotFoundError
from society_app.core.notifications.service import NotificationService
from society_app.core.orders.repository import OrderRepository
from society_app.core.payments.repository import PaymentRepository
from society_app.shared.models.enums import PaymentMethod, PaymentStatus
from society_app.shared.models.order import Order
from society_app.shared.models.payment import Payment, PaymentCallbackDTO


PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


class PaymentService:
    """Создание платежей и обработка колбэков шлюза."""

    def __init__(
        self,
        repository: PaymentRepository,
        orders: OrderRepository,
        notifications: NotificationService,
        default_method: PaymentMethod = PaymentMethod.UPI,
    ) -> None:
        self._repo = repository
        self._orders = orders
        self._notifications = notifications
        self._default_method = default_method

    async def ensure_payment(self, order: Order, conn: Any) -> tuple[Payment, bool]:
        """
        Создаёт PENDING платёж на final_price (или estimated_price), если его ещё нет.
        Вызывается внутри транзакции перехода заказа в DELIVERED.

        Returns:
            (платёж, создан ли он сейчас)
        """
        amount = order.final_price if order.final_price is not None else order.estimated_price
        payment, created = await self._repo.create_if_absent(conn, order.order_id, amount, self._default_method)
        if created:
            await log_info(
                f"Создан платёж {payment.payment_id} по заказу {order.order_number} на {amount}",
                logger_name="payments",
            )
        return payment, created

    async def get_payment(self, order_id: str) -> Payment:
        """
        Raises:
            NotFoundError: у заказа нет платежа
        """
        payment = await self._repo.get_by_order(order_id)
        if payment is None:
            raise NotFoundError(f"Платёж по заказу {order_id} не найден", details={"order_id": order_id})
        return payment

    async def handle_gateway_callback(self, callback: PaymentCallbackDTO) -> Payment:
        """
        Применяет статус из колбэка шлюза.

        Raises:
            NotFoundError: нет платежа по заказу
            InvalidTransitionError: переход статуса платежа недопустим
            ConflictError: статус платежа изменился конкурентно
        """
        async with self._repo.transaction() as conn:
            current = await self._repo.get_by_order(callback.order_id, conn, for_update=True)
            if current is None:
                raise NotFoundError(
                    f"Платёж по заказу {callback.order_id} не найден",
                    details={"order_id": callback.order_id},
                )

            target = callback.payment_status
            if target not in PAYMENT_TRANSITIONS[current.payment_status]:
                raise InvalidTransitionError(
                    f"Переход платежа {current.payment_status} -> {target} недопустим",
                    details={"current_status": current.payment_status.value, "requested_status": target.value},
                )

            paid_at = datetime.now(timezone.utc) if target == PaymentStatus.COMPLETED else None
            updated = await self._repo.compare_and_set_status(
                conn, current.payment_id, current.payment_status, callback, paid_at
            )
            if updated is None:
                raise ConflictError(
                    f"Статус платежа {current.payment_id} изменился конкурентно",
                    details={"payment_id": current.payment_id, "expected_status": current.payment_status.value},
                )

        await log_info(
            f"Платёж {updated.payment_id}: {current.payment_status} -> {updated.payment_status}",
            logger_name="payments",
        )
        order = await self._orders.get(updated.order_id)
        await self._notifications.payment_status_changed(updated, order, current.payment_status)
        return updated
