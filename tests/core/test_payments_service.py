# tests/core/test_payments_service.py
"""
Тесты для сервиса платежей.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from society_app.core.errors import ConflictError, InvalidTransitionError, NotFoundError
from society_app.core.orders.service import OrderService
from society_app.core.payments.service import PAYMENT_TRANSITIONS, PaymentService
from society_app.infra.event_bus import EventTypes
from society_app.shared.models.api import CreateOrderDTO, OrderItemDTO
from society_app.shared.models.enums import OrderStatus, PaymentMethod, PaymentStatus
from society_app.shared.models.order import Order
from society_app.shared.models.payment import PaymentCallbackDTO
from tests.fakes import (
    CATEGORY_ID,
    PICKUP_AT,
    RESIDENT,
    SOCIETY_ID,
    VENDOR_ID,
    WASH_FOLD,
    FakeOrderRepository,
    FakePaymentRepository,
    FakeStore,
    RecordingEventBus,
    advance_to,
)


async def delivered_order(order_service: OrderService) -> str:
    """Заказ на 100, доведённый до DELIVERED (платёж PENDING)."""
    created = await order_service.create_order(
        CreateOrderDTO(
            vendor_id=VENDOR_ID,
            society_id=SOCIETY_ID,
            category_id=CATEGORY_ID,
            items=[
                OrderItemDTO(service_id=WASH_FOLD, item_name="Shirt", quantity=2),
                OrderItemDTO(service_id=WASH_FOLD, item_name="Trouser", quantity=1),
            ],
            pickup_datetime=PICKUP_AT,
            pickup_address="Tower A, flat 101",
        ),
        RESIDENT,
    )
    await advance_to(order_service, created, OrderStatus.DELIVERED)
    return created.order_id


class TestPaymentTransitions:
    """Таблица переходов статуса платежа."""

    def test_refunded_is_final(self) -> None:
        assert PAYMENT_TRANSITIONS[PaymentStatus.REFUNDED] == frozenset()

    def test_pending_cannot_be_refunded(self) -> None:
        assert PaymentStatus.REFUNDED not in PAYMENT_TRANSITIONS[PaymentStatus.PENDING]


class TestEnsurePayment:
    """Тесты для PaymentService.ensure_payment."""

    @pytest.mark.asyncio
    async def test_idempotent(self, order_service: OrderService, payment_service: PaymentService, store: FakeStore) -> None:
        """Повторный вызов возвращает существующий платёж."""
        order_id = await delivered_order(order_service)
        order = store.orders[order_id]

        async with store.transaction() as conn:
            payment, created = await payment_service.ensure_payment(order, conn)

        assert created is False
        assert payment.payment_id == store.payments[order_id].payment_id
        assert len(store.payments) == 1

    @pytest.mark.asyncio
    async def test_uses_estimated_price_without_final(self, store: FakeStore) -> None:
        service = PaymentService(
            repository=FakePaymentRepository(store),
            orders=FakeOrderRepository(store),
            notifications=None,
            default_method=PaymentMethod.CASH,
        )
        order = Order(
            order_id="o-1",
            order_number="ORD-1",
            resident_id="resident-1",
            vendor_id=VENDOR_ID,
            society_id=SOCIETY_ID,
            estimated_price=Decimal("75"),
            pickup_datetime=PICKUP_AT,
            expected_delivery_date=PICKUP_AT,
            pickup_address="Tower A",
        )

        async with store.transaction() as conn:
            payment, created = await service.ensure_payment(order, conn)

        assert created is True
        assert payment.amount == Decimal("75")
        assert payment.payment_method == PaymentMethod.CASH


class TestGatewayCallback:
    """Тесты для PaymentService.handle_gateway_callback."""

    @pytest.mark.asyncio
    async def test_completed(
        self,
        order_service: OrderService,
        payment_service: PaymentService,
        event_bus: RecordingEventBus,
    ) -> None:
        order_id = await delivered_order(order_service)

        payment = await payment_service.handle_gateway_callback(
            PaymentCallbackDTO(
                order_id=order_id,
                payment_status=PaymentStatus.COMPLETED,
                payment_method=PaymentMethod.CARD,
                razorpay_payment_id="pay_123",
            )
        )

        assert payment.payment_status == PaymentStatus.COMPLETED
        assert payment.payment_method == PaymentMethod.CARD
        assert payment.razorpay_payment_id == "pay_123"
        assert payment.paid_at is not None

        events = event_bus.of_type(EventTypes.PAYMENT_STATUS_CHANGED)
        assert len(events) == 1
        assert events[0].payload["previous_status"] == "PENDING"
        assert events[0].payload["payment_status"] == "COMPLETED"
        assert events[0].payload["amount"] == "100"
        assert events[0].payload["resident_id"] == "resident-1"

    @pytest.mark.asyncio
    async def test_failed_then_refunded(self, order_service: OrderService, payment_service: PaymentService) -> None:
        order_id = await delivered_order(order_service)

        failed = await payment_service.handle_gateway_callback(
            PaymentCallbackDTO(order_id=order_id, payment_status=PaymentStatus.FAILED)
        )
        assert failed.paid_at is None

        refunded = await payment_service.handle_gateway_callback(
            PaymentCallbackDTO(order_id=order_id, payment_status=PaymentStatus.REFUNDED)
        )
        assert refunded.payment_status == PaymentStatus.REFUNDED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [PaymentStatus.PENDING, PaymentStatus.REFUNDED])
    async def test_invalid_from_pending(
        self,
        order_service: OrderService,
        payment_service: PaymentService,
        store: FakeStore,
        target: PaymentStatus,
    ) -> None:
        order_id = await delivered_order(order_service)

        with pytest.raises(InvalidTransitionError):
            await payment_service.handle_gateway_callback(PaymentCallbackDTO(order_id=order_id, payment_status=target))

        assert store.payments[order_id].payment_status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_duplicate_callback_rejected(self, order_service: OrderService, payment_service: PaymentService) -> None:
        """Повторный COMPLETED не проходит: COMPLETED -> COMPLETED не переход."""
        order_id = await delivered_order(order_service)
        callback = PaymentCallbackDTO(order_id=order_id, payment_status=PaymentStatus.COMPLETED)
        first = await payment_service.handle_gateway_callback(callback)

        with pytest.raises(InvalidTransitionError):
            await payment_service.handle_gateway_callback(callback)

        assert (await payment_service.get_payment(order_id)).paid_at == first.paid_at

    @pytest.mark.asyncio
    async def test_concurrent_callbacks(self, order_service: OrderService, payment_service: PaymentService) -> None:
        order_id = await delivered_order(order_service)

        results = await asyncio.gather(
            payment_service.handle_gateway_callback(PaymentCallbackDTO(order_id=order_id, payment_status=PaymentStatus.COMPLETED)),
            payment_service.handle_gateway_callback(PaymentCallbackDTO(order_id=order_id, payment_status=PaymentStatus.FAILED)),
            return_exceptions=True,
        )

        assert sum(isinstance(r, InvalidTransitionError) for r in results) == 1

    @pytest.mark.asyncio
    async def test_cas_conflict(self, payment_service: PaymentService, store: FakeStore, order_service: OrderService) -> None:
        """Если строка изменилась между чтением и UPDATE, возвращается конфликт."""
        order_id = await delivered_order(order_service)
        repo = payment_service._repo

        async def stale_cas(*args, **kwargs):
            return None

        repo.compare_and_set_status = stale_cas

        with pytest.raises(ConflictError):
            await payment_service.handle_gateway_callback(
                PaymentCallbackDTO(order_id=order_id, payment_status=PaymentStatus.COMPLETED)
            )

    @pytest.mark.asyncio
    async def test_unknown_order(self, payment_service: PaymentService) -> None:
        with pytest.raises(NotFoundError):
            await payment_service.handle_gateway_callback(
                PaymentCallbackDTO(order_id="missing", payment_status=PaymentStatus.COMPLETED)
            )

    @pytest.mark.asyncio
    async def test_get_payment_missing(self, payment_service: PaymentService) -> None:
        with pytest.raises(NotFoundError):
            await payment_service.get_payment("missing")
