# society_app/core/notifications/rules.py
"""
Кому и что отправлять по доменным событиям.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from society_app.infra.event_bus import DomainEvent, EventTypes
from society_app.shared.models.enums import OrderStatus, PaymentStatus


class Recipient(str, Enum):
    """Сторона заказа, которой адресовано уведомление."""
    RESIDENT = "resident"
    VENDOR = "vendor"


@dataclass
class PushMessage:
    """Уведомление, ещё не привязанное к конкретному user_id."""
    recipient: Recipient
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


# Тексты уведомлений жителю по статусам заказа
RESIDENT_STATUS_MESSAGES: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.PICKUP_SCHEDULED: ("Pickup scheduled", "Your order {number} pickup has been scheduled."),
    OrderStatus.COUNT_APPROVAL_PENDING: ("Please confirm item count", "Review and approve the item count for order {number}."),
    OrderStatus.READY_FOR_DELIVERY: ("Order ready", "Your order {number} is ready for delivery."),
    OrderStatus.OUT_FOR_DELIVERY: ("Out for delivery", "Your order {number} is on its way."),
    OrderStatus.DELIVERED: ("Order delivered", "Your order {number} has been delivered."),
    OrderStatus.CANCELLED: ("Order cancelled", "Your order {number} has been cancelled."),
}

# Тексты уведомлений исполнителю
VENDOR_STATUS_MESSAGES: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.PICKED_UP: ("Count approved", "Item count for order {number} was approved."),
    OrderStatus.COMPLETED: ("Order completed", "Order {number} was confirmed as completed."),
    OrderStatus.CANCELLED: ("Order cancelled", "Order {number} has been cancelled."),
}

PAYMENT_MESSAGES: dict[PaymentStatus, tuple[str, str]] = {
    PaymentStatus.COMPLETED: ("Payment received", "Payment for order {number} was received."),
    PaymentStatus.FAILED: ("Payment failed", "Payment for order {number} failed."),
    PaymentStatus.REFUNDED: ("Payment refunded", "Payment for order {number} was refunded."),
}


def _data(event: DomainEvent) -> dict[str, str]:
    payload = event.payload
    data = {"event_type": event.event_type}
    for key in ("order_id", "order_number", "status", "payment_status"):
        value = payload.get(key)
        if value is not None:
            data[key] = str(value)
    return data


def build_messages(event: DomainEvent) -> list[PushMessage]:
    """Уведомления по событию (пустой список, если уведомлять некого)."""
    payload = event.payload
    number = str(payload.get("order_number") or payload.get("order_id") or "")
    data = _data(event)

    if event.event_type == EventTypes.ORDER_CREATED:
        return [
            PushMessage(Recipient.VENDOR, "New order", f"New order {number} is waiting for pickup scheduling.", data),
        ]

    if event.event_type == EventTypes.ORDER_STATUS_CHANGED:
        try:
            status = OrderStatus(payload.get("status"))
        except ValueError:
            return []
        messages = []
        if status in RESIDENT_STATUS_MESSAGES:
            title, body = RESIDENT_STATUS_MESSAGES[status]
            messages.append(PushMessage(Recipient.RESIDENT, title, body.format(number=number), data))
        if status in VENDOR_STATUS_MESSAGES:
            title, body = VENDOR_STATUS_MESSAGES[status]
            messages.append(PushMessage(Recipient.VENDOR, title, body.format(number=number), data))
        return messages

    if event.event_type == EventTypes.PAYMENT_STATUS_CHANGED:
        try:
            status = PaymentStatus(payload.get("payment_status"))
        except ValueError:
            return []
        if status not in PAYMENT_MESSAGES:
            return []
        title, body = PAYMENT_MESSAGES[status]
        text = body.format(number=number)
        return [
            PushMessage(Recipient.RESIDENT, title, text, data),
            PushMessage(Recipient.VENDOR, title, text, data),
        ]

    return []
