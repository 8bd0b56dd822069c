# society_app/shared/models/order.py
"""
Агрегат заказа: заказ, позиции и статусы отдельных услуг.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, model_validator

from society_app.shared.models.enums import DeliveryPreference, OrderStatus


class Order(BaseModel):
    """Заказ жителя у исполнителя."""

    order_id: str  # UUID
    order_number: str
    resident_id: str
    vendor_id: str
    society_id: int
    status: OrderStatus = OrderStatus.BOOKING_CREATED
    has_multiple_services: bool = False
    estimated_price: Decimal = Field(default=Decimal("0"), ge=0)
    final_price: Decimal | None = Field(default=None, ge=0)
    pickup_datetime: datetime
    expected_delivery_date: datetime
    actual_delivery_date: datetime | None = None
    pickup_address: str
    delivery_preference: DeliveryPreference = DeliveryPreference.SINGLE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True

    @property
    def is_partial(self) -> bool:
        return self.delivery_preference == DeliveryPreference.PARTIAL


class OrderItem(BaseModel):
    """
    Позиция заказа.
    Инвариант: total_price == quantity * unit_price.
    Если total_price не передан, он вычисляется.
    """

    item_id: int
    order_id: str
    service_id: int
    item_name: str
    quantity: int = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)
    total_price: Decimal
    created_at: datetime | None = None

    class Config:
        from_attributes = True

    @model_validator(mode="before")
    @classmethod
    def fill_total_price(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("total_price") is None:
            quantity = data.get("quantity")
            unit_price = data.get("unit_price")
            if quantity is not None and unit_price is not None:
                data = {**data, "total_price": Decimal(str(unit_price)) * int(quantity)}
        return data

    @model_validator(mode="after")
    def check_total_price(self) -> "OrderItem":
        expected = self.unit_price * self.quantity
        if self.total_price != expected:
            raise ValueError(
                f"total_price {self.total_price} != quantity * unit_price ({expected}) "
                f"для позиции {self.item_name!r}"
            )
        return self

    def with_quantity(self, quantity: int) -> "OrderItem":
        """Возвращает копию позиции с новым количеством и пересчитанной суммой."""
        data = self.model_dump()
        data["quantity"] = quantity
        data["total_price"] = None
        return OrderItem.model_validate(data)


class OrderServiceStatus(BaseModel):
    """Статус одной услуги внутри заказа с частичной доставкой."""

    status_id: int
    order_id: str
    service_id: int
    item_count: int = Field(default=0, ge=0)
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    status: OrderStatus = OrderStatus.BOOKING_CREATED
    expected_delivery_date: datetime
    actual_delivery_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class OrderDetails(Order):
    """Заказ вместе с позициями и статусами услуг (ответ API)."""

    items: list[OrderItem] = Field(default_factory=list)
    service_statuses: list[OrderServiceStatus] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        order: Order,
        items: list[OrderItem],
        service_statuses: list[OrderServiceStatus] | None = None,
    ) -> "OrderDetails":
        return cls(
            **order.model_dump(),
            items=sorted(items, key=lambda i: i.item_id),
            service_statuses=sorted(service_statuses or [], key=lambda s: s.service_id),
        )

    def to_order(self) -> Order:
        return Order.model_validate(self.model_dump(exclude={"items", "service_statuses"}))
