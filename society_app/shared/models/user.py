# society_app/shared/models/user.py
"""
Участники платформы: пользователь, житель, исполнитель.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from society_app.shared.models.enums import ApprovalStatus, UserType


class User(BaseModel):
    """Учётная запись пользователя."""

    user_id: str  # UUID
    phone: str
    user_type: UserType
    email: str | None = None
    full_name: str | None = None
    is_verified: bool = False
    fcm_token: str | None = None  # Токен устройства для push
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class Resident(BaseModel):
    """Житель, оформляющий заказы в своём обществе."""

    resident_id: str
    user_id: str
    society_id: int
    flat_number: str
    tower: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class Vendor(BaseModel):
    """Исполнитель услуг, привязанный к категории и обществу."""

    vendor_id: str
    user_id: str
    business_name: str
    owner_name: str
    phone: str
    email: str | None = None
    category_id: int
    society_id: int
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    is_available: bool = True
    rating: Decimal | None = Field(default=None, ge=0, le=5)
    total_orders: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
