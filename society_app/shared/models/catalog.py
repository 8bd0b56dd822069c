# society_app/shared/models/catalog.py
"""
Каталог: категории, услуги, предложения исполнителей и прайс-листы.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ParentCategory(BaseModel):
    """Верхнеуровневая категория (например, стирка)."""

    category_id: int
    category_key: str
    category_name: str
    category_icon: str | None = None
    is_live: bool = False
    sort_order: int = 0
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ServiceCategory(BaseModel):
    """Конкретная услуга внутри категории."""

    service_id: int
    parent_category_id: int
    service_key: str
    service_name: str
    service_description: str | None = None
    estimated_duration_hours: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class VendorService(BaseModel):
    """Строка предложения: исполнитель оказывает услугу (или нет)."""

    vendor_service_id: int
    vendor_id: str
    service_id: int
    is_offered: bool = True
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class VendorRateCard(BaseModel):
    """Позиция прайс-листа исполнителя."""

    rate_card_id: int
    vendor_id: str
    service_id: int
    item_name: str
    price: Decimal = Field(..., ge=0)
    unit: str = "piece"
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
