# society_app/shared/models/api.py
"""
Конверт ответов API и DTO запросов.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, JsonValue

from society_app.shared.models.common import PaginationParams
from society_app.shared.models.enums import DeliveryPreference, OrderStatus


T = TypeVar("T")


# =============================================================================
# КОНВЕРТ ОТВЕТА
# =============================================================================

class ApiError(BaseModel):
    """Ошибка в конверте ответа: стабильный код и сообщение для человека."""

    code: str
    message: str
    details: dict[str, JsonValue] | None = None


class ResponseMeta(BaseModel):
    """Метаданные ответа."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None


class ApiResponse(BaseModel, Generic[T]):
    """Стандартный ответ API."""

    success: bool
    data: T | None = None
    error: ApiError | None = None
    meta: ResponseMeta | None = None

    @classmethod
    def ok(cls, data: T, request_id: str | None = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, meta=ResponseMeta(request_id=request_id))

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        details: dict[str, JsonValue] | None = None,
        request_id: str | None = None,
    ) -> "ApiResponse[T]":
        return cls(
            success=False,
            error=ApiError(code=code, message=message, details=details),
            meta=ResponseMeta(request_id=request_id),
        )


class PaginationMeta(BaseModel):
    """Блок пагинации."""

    page: int
    limit: int
    total: int
    total_pages: int


class PaginatedResponse(BaseModel, Generic[T]):
    """Пагинированный ответ."""

    success: bool = True
    data: list[T] = Field(default_factory=list)
    pagination: PaginationMeta

    @classmethod
    def create(cls, items: list[T], total: int, params: PaginationParams) -> "PaginatedResponse[T]":
        """Создаёт пагинированный ответ."""
        total_pages = (total + params.limit - 1) // params.limit
        return cls(
            data=items,
            pagination=PaginationMeta(
                page=params.page,
                limit=params.limit,
                total=total,
                total_pages=total_pages,
            ),
        )


# =============================================================================
# ЗАПРОСЫ
# =============================================================================

class OrderItemDTO(BaseModel):
    """Позиция в запросе. unit_price не передан -> цена берётся из прайс-листа."""

    service_id: int
    item_name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal | None = Field(default=None, ge=0)

    class Config:
        str_strip_whitespace = True


class CreateOrderDTO(BaseModel):
    """Запрос на создание заказа."""

    vendor_id: str
    society_id: int
    category_id: int
    items: list[OrderItemDTO] = Field(..., min_length=1)
    pickup_datetime: datetime
    pickup_address: str = Field(..., min_length=1)
    delivery_preference: DeliveryPreference = DeliveryPreference.SINGLE

    class Config:
        str_strip_whitespace = True


class ItemCountDTO(BaseModel):
    """Подтверждённое количество по позиции."""

    item_id: int
    quantity: int = Field(..., ge=0)


class AdvanceStatusRequest(BaseModel):
    """Запрос на переход статуса заказа или услуги."""

    status: OrderStatus
    expected_status: OrderStatus | None = None
    item_counts: list[ItemCountDTO] | None = None


class UpdateItemQuantityRequest(BaseModel):
    """Исправление количества до забора вещей."""

    quantity: int = Field(..., ge=0)
    expected_status: OrderStatus | None = None


class EstimateRequest(BaseModel):
    """Запрос на предварительный расчёт стоимости."""

    vendor_id: str
    items: list[OrderItemDTO] = Field(..., min_length=1)


# =============================================================================
# ОТВЕТЫ
# =============================================================================

class PriceLine(BaseModel):
    """Строка расчёта."""

    service_id: int
    item_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    rate_card_id: int


class PriceEstimate(BaseModel):
    """Результат расчёта стоимости."""

    vendor_id: str
    lines: list[PriceLine] = Field(default_factory=list)
    estimated_price: Decimal = Decimal("0")


class EligibilityResult(BaseModel):
    """Может ли исполнитель оказать услугу."""

    vendor_id: str
    service_id: int
    eligible: bool
    reason: str | None = None


class NotificationRequest(BaseModel):
    """Запрос на отправку push-уведомления пользователю."""

    user_id: str = Field(..., min_length=1)
    title: str
    body: str
    data: dict[str, JsonValue] | None = None
