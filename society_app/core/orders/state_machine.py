# society_app/core/orders/state_machine.py
"""
Машина состояний заказа.

Заказ движется строго по цепочке ORDER_FLOW на один шаг за раз;
CANCELLED достижим из любого нетерминального статуса.
Кто может выполнить переход, задаётся таблицей ролей (from, to) -> роли,
которую можно переопределить из config.json (ключ TRANSITION_ROLES).
"""

from __future__ import annotations

from typing import Iterable, Mapping

from society_app.core.errors import InvalidTransitionError, UnauthorizedError
from society_app.shared.models.enums import OrderStatus, UserType


ORDER_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.BOOKING_CREATED,
    OrderStatus.PICKUP_SCHEDULED,
    OrderStatus.PICKUP_IN_PROGRESS,
    OrderStatus.COUNT_APPROVAL_PENDING,
    OrderStatus.PICKED_UP,
    OrderStatus.PROCESSING_IN_PROGRESS,
    OrderStatus.READY_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

_PROGRESS: dict[OrderStatus, int] = {status: index for index, status in enumerate(ORDER_FLOW)}

Transition = tuple[OrderStatus, OrderStatus]


def progress(status: OrderStatus) -> int:
    """Позиция статуса в цепочке. Для CANCELLED не определена."""
    try:
        return _PROGRESS[status]
    except KeyError:
        raise ValueError(f"Статус {status} не входит в цепочку выполнения") from None


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def next_status(status: OrderStatus) -> OrderStatus | None:
    """Следующий статус цепочки или None для терминальных."""
    if is_terminal(status):
        return None
    return ORDER_FLOW[_PROGRESS[status] + 1]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Переход допустим: ровно следующий статус или отмена нетерминального."""
    if is_terminal(current):
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return next_status(current) == target


def is_before(status: OrderStatus, milestone: OrderStatus) -> bool:
    """Статус строго раньше milestone в цепочке (CANCELLED ничему не предшествует)."""
    if status == OrderStatus.CANCELLED:
        return False
    return progress(status) < progress(milestone)


def reached(status: OrderStatus, milestone: OrderStatus) -> bool:
    """Статус не раньше milestone в цепочке."""
    if status == OrderStatus.CANCELLED:
        return False
    return progress(status) >= progress(milestone)


# =============================================================================
# ТАБЛИЦА РОЛЕЙ
# =============================================================================

_OPERATORS = frozenset({UserType.VENDOR, UserType.PLATFORM_ADMIN})
_COUNT_APPROVERS = frozenset({UserType.RESIDENT, UserType.SOCIETY_ADMIN})
_COMPLETION_CONFIRMERS = frozenset({UserType.RESIDENT, UserType.SOCIETY_ADMIN, UserType.PLATFORM_ADMIN})
_EARLY_CANCELLERS = frozenset(UserType)
_LATE_CANCELLERS = frozenset({UserType.SOCIETY_ADMIN, UserType.PLATFORM_ADMIN})


def _default_transition_roles() -> dict[Transition, frozenset[UserType]]:
    roles: dict[Transition, frozenset[UserType]] = {}

    for current, target in zip(ORDER_FLOW, ORDER_FLOW[1:]):
        roles[(current, target)] = _OPERATORS
    roles[(OrderStatus.COUNT_APPROVAL_PENDING, OrderStatus.PICKED_UP)] = _COUNT_APPROVERS
    roles[(OrderStatus.DELIVERED, OrderStatus.COMPLETED)] = _COMPLETION_CONFIRMERS

    for status in ORDER_FLOW:
        if is_terminal(status):
            continue
        cancellers = _EARLY_CANCELLERS if is_before(status, OrderStatus.PICKED_UP) else _LATE_CANCELLERS
        roles[(status, OrderStatus.CANCELLED)] = cancellers

    return roles


DEFAULT_TRANSITION_ROLES: Mapping[Transition, frozenset[UserType]] = _default_transition_roles()

# Исправление количества до забора: житель, исполнитель и администратор платформы
DEFAULT_ITEM_EDIT_ROLES: frozenset[UserType] = frozenset({UserType.RESIDENT, UserType.VENDOR, UserType.PLATFORM_ADMIN})


def parse_transition_roles(overrides: Mapping[str, Iterable[str]]) -> dict[Transition, frozenset[UserType]]:
    """
    Разбирает переопределения вида {"FROM->TO": ["ROLE", ...]}.

    Raises:
        ValueError: неизвестный статус, роль или недопустимый переход
    """
    parsed: dict[Transition, frozenset[UserType]] = {}
    for key, role_names in overrides.items():
        left, sep, right = key.partition("->")
        if not sep:
            raise ValueError(f"Ключ TRANSITION_ROLES должен иметь вид FROM->TO: {key!r}")
        current = OrderStatus(left.strip())
        target = OrderStatus(right.strip())
        if not can_transition(current, target):
            raise ValueError(f"Переход {current} -> {target} не существует в цепочке")
        parsed[(current, target)] = frozenset(UserType(name) for name in role_names)
    return parsed


class OrderStateMachine:
    """Проверка переходов статуса и прав на них."""

    def __init__(
        self,
        transition_roles: Mapping[Transition, frozenset[UserType]] | None = None,
        item_edit_roles: Iterable[UserType] | None = None,
    ) -> None:
        self._roles: dict[Transition, frozenset[UserType]] = dict(DEFAULT_TRANSITION_ROLES)
        if transition_roles:
            self._roles.update(transition_roles)
        self.item_edit_roles: frozenset[UserType] = (
            frozenset(item_edit_roles) if item_edit_roles else DEFAULT_ITEM_EDIT_ROLES
        )

    @classmethod
    def from_settings(cls) -> "OrderStateMachine":
        """Создаёт машину с переопределениями из конфигурации."""
        from society_app.config import settings

        return cls(
            parse_transition_roles(settings.orders.TRANSITION_ROLES),
            item_edit_roles=[UserType(name) for name in settings.orders.ITEM_EDIT_ROLES],
        )

    def allowed_roles(self, current: OrderStatus, target: OrderStatus) -> frozenset[UserType]:
        return self._roles.get((current, target), frozenset())

    def validate(self, current: OrderStatus, target: OrderStatus, role: UserType) -> None:
        """
        Проверяет переход current -> target для роли.

        Raises:
            InvalidTransitionError: переход нарушает цепочку
            UnauthorizedError: роли переход не разрешён
        """
        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"Переход {current} -> {target} недопустим",
                details={"current_status": current.value, "requested_status": target.value},
            )
        allowed = self.allowed_roles(current, target)
        if role not in allowed:
            raise UnauthorizedError(
                f"Роль {role} не может выполнить переход {current} -> {target}",
                details={
                    "current_status": current.value,
                    "requested_status": target.value,
                    "role": role.value,
                    "allowed_roles": sorted(r.value for r in allowed),
                },
            )

    def validate_item_edit(self, role: UserType) -> None:
        """
        Raises:
            UnauthorizedError: роли не разрешено исправлять количество
        """
        if role not in self.item_edit_roles:
            raise UnauthorizedError(
                f"Роль {role} не может исправлять количество позиций",
                details={"role": role.value, "allowed_roles": sorted(r.value for r in self.item_edit_roles)},
            )


# =============================================================================
# АГРЕГИРОВАННЫЙ СТАТУС (PARTIAL)
# =============================================================================

def aggregate_status(children: Iterable[OrderStatus]) -> OrderStatus:
    """
    Статус заказа по статусам его услуг: наименее продвинутый из неотменённых.
    Отменённые услуги не учитываются; если отменены все, заказ CANCELLED.

    Raises:
        ValueError: пустой набор статусов
    """
    statuses = list(children)
    if not statuses:
        raise ValueError("Нельзя вычислить статус заказа без статусов услуг")

    active = [status for status in statuses if status != OrderStatus.CANCELLED]
    if not active:
        return OrderStatus.CANCELLED
    return min(active, key=progress)
