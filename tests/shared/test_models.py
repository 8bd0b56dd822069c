# tests/shared/test_models.py
"""
Тесты для общих моделей.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from society_app.shared.models.api import (
    ApiResponse,
    CreateOrderDTO,
    ItemCountDTO,
    NotificationRequest,
    OrderItemDTO,
    PaginatedResponse,
)
from society_app.shared.models.common import PaginationParams
from society_app.shared.models.enums import DeliveryPreference, OrderStatus
from society_app.shared.models.order import Order, OrderDetails, OrderItem, OrderServiceStatus


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def make_item(**overrides) -> OrderItem:
    data = {
        "item_id": 1,
        "order_id": "o-1",
        "service_id": 100,
        "item_name": "Shirt",
        "quantity": 2,
        "unit_price": Decimal("30"),
    }
    data.update(overrides)
    return OrderItem(**data)


class TestOrderItem:
    """Инвариант total_price == quantity * unit_price."""

    def test_total_price_filled(self) -> None:
        assert make_item().total_price == Decimal("60")

    def test_consistent_total_accepted(self) -> None:
        assert make_item(total_price=Decimal("60.00")).total_price == Decimal("60")

    def test_inconsistent_total_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_item(total_price=Decimal("59"))

    def test_negative_quantity_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_item(quantity=-1)

    def test_with_quantity(self) -> None:
        item = make_item()

        updated = item.with_quantity(5)

        assert updated.total_price == Decimal("150")
        assert item.quantity == 2

    def test_with_zero_quantity(self) -> None:
        assert make_item().with_quantity(0).total_price == Decimal("0")


class TestOrderDetails:
    """Тесты для OrderDetails."""

    def test_build_sorts_and_roundtrips(self) -> None:
        order = Order(
            order_id="o-1",
            order_number="ORD-1",
            resident_id="r-1",
            vendor_id="v-1",
            society_id=1,
            estimated_price=Decimal("60"),
            pickup_datetime=NOW,
            expected_delivery_date=NOW,
            pickup_address="Tower A",
            delivery_preference=DeliveryPreference.PARTIAL,
        )
        statuses = [
            OrderServiceStatus(status_id=2, order_id="o-1", service_id=200, expected_delivery_date=NOW),
            OrderServiceStatus(status_id=1, order_id="o-1", service_id=100, expected_delivery_date=NOW),
        ]

        details = OrderDetails.build(order, [make_item(item_id=2), make_item(item_id=1)], statuses)

        assert [i.item_id for i in details.items] == [1, 2]
        assert [s.service_id for s in details.service_statuses] == [100, 200]
        assert details.is_partial
        assert details.to_order() == order


class TestRequestModels:
    """Валидация DTO запросов."""

    def test_create_order_requires_items(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderDTO(
                vendor_id="v-1",
                society_id=1,
                category_id=10,
                items=[],
                pickup_datetime=NOW,
                pickup_address="Tower A",
            )

    def test_item_quantity_positive(self) -> None:
        with pytest.raises(ValidationError):
            OrderItemDTO(service_id=100, item_name="Shirt", quantity=0)

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_blank_item_name_rejected(self, name: str) -> None:
        with pytest.raises(ValidationError):
            OrderItemDTO(service_id=100, item_name=name, quantity=1)

    def test_item_name_stripped(self) -> None:
        assert OrderItemDTO(service_id=100, item_name="  Shirt ", quantity=1).item_name == "Shirt"

    def test_blank_pickup_address_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderDTO(
                vendor_id="v-1",
                society_id=1,
                category_id=10,
                items=[OrderItemDTO(service_id=100, item_name="Shirt", quantity=1)],
                pickup_datetime=NOW,
                pickup_address="   ",
            )

    def test_notification_data_any_json(self) -> None:
        request = NotificationRequest(user_id="u-1", title="t", body="b", data={"n": 1, "ok": True})
        assert request.data == {"n": 1, "ok": True}

    def test_count_may_be_zero(self) -> None:
        assert ItemCountDTO(item_id=1, quantity=0).quantity == 0

    def test_notification_requires_user(self) -> None:
        with pytest.raises(ValidationError):
            NotificationRequest(user_id="", title="t", body="b")

    def test_status_enum_parsing(self) -> None:
        assert OrderStatus("DELIVERED") == OrderStatus.DELIVERED
        with pytest.raises(ValueError):
            OrderStatus("LOST")


class TestEnvelope:
    """Конверт ответа и пагинация."""

    def test_ok(self) -> None:
        response = ApiResponse[dict].ok({"a": 1}, request_id="req-1")

        assert response.success is True
        assert response.error is None
        assert response.meta.request_id == "req-1"

    def test_fail(self) -> None:
        response = ApiResponse[dict].fail("CONFLICT", "busy", {"expected_status": "PICKED_UP"})

        assert response.success is False
        assert response.data is None
        assert response.error.code == "CONFLICT"
        assert response.error.details == {"expected_status": "PICKED_UP"}

    @pytest.mark.parametrize("total,pages", [(0, 0), (1, 1), (20, 1), (21, 2)])
    def test_total_pages(self, total: int, pages: int) -> None:
        response = PaginatedResponse[int].create([], total, PaginationParams(page=1, limit=20))

        assert response.pagination.total_pages == pages

    def test_offset(self) -> None:
        assert PaginationParams(page=3, limit=10).offset == 20

    def test_limit_bounds(self) -> None:
        with pytest.raises(ValidationError):
            PaginationParams(limit=101)
