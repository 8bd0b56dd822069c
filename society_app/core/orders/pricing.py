# society_app/core/orders/pricing.py
"""
Расчёт стоимости заказа по прайс-листу исполнителя.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from society_app.core.errors import RateNotFoundError, ValidationFailedError
from society_app.shared.models.api import OrderItemDTO, PriceEstimate, PriceLine
from society_app.shared.models.catalog import VendorRateCard


def normalize_item_name(name: str) -> str:
    """Имя позиции для сравнения: без пробелов по краям, без учёта регистра."""
    return name.strip().casefold()


class PriceCalculator:
    """
    Калькулятор стоимости.
    Цена без unit_price берётся из прайс-листа; переданная цена
    должна укладываться в допуск tolerance_percent от прайс-листа.
    """

    def __init__(self, tolerance_percent: float | Decimal = 1.0) -> None:
        self.tolerance_percent = Decimal(str(tolerance_percent))

    @classmethod
    def from_settings(cls) -> "PriceCalculator":
        from society_app.config import settings

        return cls(settings.orders.PRICE_TOLERANCE_PERCENT)

    def find_rate_card(
        self,
        vendor_id: str,
        service_id: int,
        item_name: str,
        rate_cards: Iterable[VendorRateCard],
    ) -> VendorRateCard | None:
        """Активная строка прайс-листа для позиции."""
        wanted = normalize_item_name(item_name)
        for card in rate_cards:
            if (
                card.is_active
                and card.vendor_id == vendor_id
                and card.service_id == service_id
                and normalize_item_name(card.item_name) == wanted
            ):
                return card
        return None

    def resolve_unit_price(self, item: OrderItemDTO, card: VendorRateCard) -> Decimal:
        """
        Цена за единицу для позиции.

        Raises:
            ValidationFailedError: PRICE_MISMATCH, если цена вне допуска
        """
        if item.unit_price is None:
            return card.price

        allowed = card.price * self.tolerance_percent / Decimal(100)
        if abs(item.unit_price - card.price) > allowed:
            raise ValidationFailedError(
                f"Цена {item.unit_price} для {item.item_name!r} расходится с прайс-листом ({card.price})",
                code="PRICE_MISMATCH",
                details={
                    "service_id": item.service_id,
                    "item_name": item.item_name,
                    "supplied_price": str(item.unit_price),
                    "rate_card_price": str(card.price),
                    "tolerance_percent": str(self.tolerance_percent),
                },
            )
        return item.unit_price

    def compute_estimate(
        self,
        vendor_id: str,
        items: Iterable[OrderItemDTO],
        rate_cards: Iterable[VendorRateCard],
    ) -> PriceEstimate:
        """
        Считает стоимость: сумма quantity * unit_price по всем позициям.

        Raises:
            RateNotFoundError: нет активной строки прайс-листа для позиции
            ValidationFailedError: переданная цена вне допуска
        """
        cards = list(rate_cards)
        lines: list[PriceLine] = []

        for item in items:
            card = self.find_rate_card(vendor_id, item.service_id, item.item_name, cards)
            if card is None:
                raise RateNotFoundError(
                    f"Нет активной цены для {item.item_name!r} (услуга {item.service_id})",
                    details={"vendor_id": vendor_id, "service_id": item.service_id, "item_name": item.item_name},
                )
            unit_price = self.resolve_unit_price(item, card)
            lines.append(
                PriceLine(
                    service_id=item.service_id,
                    item_name=item.item_name.strip(),
                    quantity=item.quantity,
                    unit_price=unit_price,
                    total_price=unit_price * item.quantity,
                    rate_card_id=card.rate_card_id,
                )
            )

        return PriceEstimate(
            vendor_id=vendor_id,
            lines=lines,
            estimated_price=sum((line.total_price for line in lines), Decimal("0")),
        )
