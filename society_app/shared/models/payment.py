# society_app/shared/models/payment.py
"""
Платёж по заказу.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from society_app.shared.models.enums import PaymentMethod, PaymentStatus


class Payment(BaseModel):
    """Платёж создаётся при доставке заказа и меняется только колбэком шлюза."""

    payment_id: int
    order_id: str
    amount: Decimal = Field(..., ge=0)
    payment_method: PaymentMethod = PaymentMethod.UPI
    payment_status: PaymentStatus = PaymentStatus.PENDING
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class PaymentCallbackDTO(BaseModel):
    """Уведомление платёжного шлюза о смене статуса."""

    order_id: str
    payment_status: PaymentStatus
    payment_method: PaymentMethod | None = None
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None
