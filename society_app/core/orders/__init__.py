"""
Жизненный цикл заказа: машина состояний, проверка исполнителя, расчёт цены.
Сервис и репозиторий импортируются из своих модулей напрямую.
"""

from society_app.core.orders.eligibility import check_eligibility, ensure_eligible, is_eligible
from society_app.core.orders.models import Actor
from society_app.core.orders.pricing import PriceCalculator
from society_app.core.orders.state_machine import (
    ORDER_FLOW,
    OrderStateMachine,
    aggregate_status,
    can_transition,
)

__all__ = [
    "Actor",
    "ORDER_FLOW",
    "OrderStateMachine",
    "PriceCalculator",
    "aggregate_status",
    "can_transition",
    "check_eligibility",
    "ensure_eligible",
    "is_eligible",
]
