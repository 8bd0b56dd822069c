# society_app/shared/models/enums.py
"""
Перечисления предметной области.
Значения совпадают с тем, что хранится в БД и передаётся по API.
"""

from enum import Enum


class UserType(str, Enum):
    """Тип пользователя (он же роль актора при переходах)."""
    RESIDENT = "RESIDENT"
    VENDOR = "VENDOR"
    SOCIETY_ADMIN = "SOCIETY_ADMIN"
    PLATFORM_ADMIN = "PLATFORM_ADMIN"

    def __str__(self) -> str:
        return self.value


class ApprovalStatus(str, Enum):
    """Статус модерации исполнителя."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    def __str__(self) -> str:
        return self.value


class OrderStatus(str, Enum):
    """Статусы заказа в порядке прохождения (CANCELLED вне цепочки)."""
    BOOKING_CREATED = "BOOKING_CREATED"
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED"
    PICKUP_IN_PROGRESS = "PICKUP_IN_PROGRESS"
    COUNT_APPROVAL_PENDING = "COUNT_APPROVAL_PENDING"  # Житель подтверждает пересчёт вещей
    PICKED_UP = "PICKED_UP"
    PROCESSING_IN_PROGRESS = "PROCESSING_IN_PROGRESS"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    def __str__(self) -> str:
        return self.value


class DeliveryPreference(str, Enum):
    """Режим доставки: всё разом или по готовности каждой услуги."""
    SINGLE = "SINGLE"
    PARTIAL = "PARTIAL"

    def __str__(self) -> str:
        return self.value


class PaymentMethod(str, Enum):
    """Способы оплаты."""
    CASH = "CASH"
    UPI = "UPI"
    CARD = "CARD"
    NET_BANKING = "NET_BANKING"

    def __str__(self) -> str:
        return self.value


class PaymentStatus(str, Enum):
    """Статусы платежа."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

    def __str__(self) -> str:
        return self.value
