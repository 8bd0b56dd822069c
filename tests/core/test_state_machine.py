# tests/core/test_state_machine.py
"""
Тесты машины состояний заказа.
"""

from __future__ import annotations

import itertools

import pytest

from society_app.core.errors import InvalidTransitionError, UnauthorizedError
from society_app.core.orders.state_machine import (
    DEFAULT_TRANSITION_ROLES,
    ORDER_FLOW,
    OrderStateMachine,
    aggregate_status,
    can_transition,
    is_before,
    is_terminal,
    next_status,
    parse_transition_roles,
    progress,
    reached,
)
from society_app.shared.models.enums import OrderStatus, UserType


class TestFlow:
    """Цепочка статусов."""

    def test_flow_order(self) -> None:
        assert ORDER_FLOW[0] == OrderStatus.BOOKING_CREATED
        assert ORDER_FLOW[-1] == OrderStatus.COMPLETED
        assert OrderStatus.CANCELLED not in ORDER_FLOW
        assert len(ORDER_FLOW) == 10

    def test_next_status(self) -> None:
        assert next_status(OrderStatus.BOOKING_CREATED) == OrderStatus.PICKUP_SCHEDULED
        assert next_status(OrderStatus.DELIVERED) == OrderStatus.COMPLETED
        assert next_status(OrderStatus.COMPLETED) is None
        assert next_status(OrderStatus.CANCELLED) is None

    def test_progress_of_cancelled_undefined(self) -> None:
        with pytest.raises(ValueError):
            progress(OrderStatus.CANCELLED)

    def test_terminal(self) -> None:
        assert is_terminal(OrderStatus.COMPLETED)
        assert is_terminal(OrderStatus.CANCELLED)
        assert not is_terminal(OrderStatus.DELIVERED)

    def test_is_before_and_reached(self) -> None:
        assert is_before(OrderStatus.COUNT_APPROVAL_PENDING, OrderStatus.PICKED_UP)
        assert not is_before(OrderStatus.PICKED_UP, OrderStatus.PICKED_UP)
        assert not is_before(OrderStatus.CANCELLED, OrderStatus.PICKED_UP)
        assert reached(OrderStatus.COMPLETED, OrderStatus.DELIVERED)
        assert not reached(OrderStatus.CANCELLED, OrderStatus.DELIVERED)


class TestCanTransition:
    """Допустимость переходов."""

    @pytest.mark.parametrize("current,target", list(zip(ORDER_FLOW, ORDER_FLOW[1:])))
    def test_forward_by_one(self, current: OrderStatus, target: OrderStatus) -> None:
        assert can_transition(current, target)

    def test_exhaustive(self) -> None:
        """Вперёд ровно на шаг или отмена нетерминального; всё остальное запрещено."""
        for current, target in itertools.product(OrderStatus, repeat=2):
            expected = not is_terminal(current) and (
                target == OrderStatus.CANCELLED or next_status(current) == target
            )
            assert can_transition(current, target) is expected, (current, target)

    def test_skip_and_backward_rejected(self) -> None:
        assert not can_transition(OrderStatus.BOOKING_CREATED, OrderStatus.PICKUP_IN_PROGRESS)
        assert not can_transition(OrderStatus.PICKED_UP, OrderStatus.COUNT_APPROVAL_PENDING)
        assert not can_transition(OrderStatus.PICKUP_SCHEDULED, OrderStatus.PICKUP_SCHEDULED)


class TestOrderStateMachine:
    """Проверка ролей."""

    @pytest.fixture
    def machine(self) -> OrderStateMachine:
        return OrderStateMachine()

    def test_vendor_drives_operations(self, machine: OrderStateMachine) -> None:
        machine.validate(OrderStatus.BOOKING_CREATED, OrderStatus.PICKUP_SCHEDULED, UserType.VENDOR)
        machine.validate(OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, UserType.PLATFORM_ADMIN)

    def test_resident_cannot_schedule_pickup(self, machine: OrderStateMachine) -> None:
        with pytest.raises(UnauthorizedError) as exc_info:
            machine.validate(OrderStatus.BOOKING_CREATED, OrderStatus.PICKUP_SCHEDULED, UserType.RESIDENT)

        assert exc_info.value.details["allowed_roles"] == ["PLATFORM_ADMIN", "VENDOR"]

    def test_count_approval_only_resident_side(self, machine: OrderStateMachine) -> None:
        """Пересчёт подтверждает житель (или администратор общества), не исполнитель."""
        machine.validate(OrderStatus.COUNT_APPROVAL_PENDING, OrderStatus.PICKED_UP, UserType.RESIDENT)
        machine.validate(OrderStatus.COUNT_APPROVAL_PENDING, OrderStatus.PICKED_UP, UserType.SOCIETY_ADMIN)
        with pytest.raises(UnauthorizedError):
            machine.validate(OrderStatus.COUNT_APPROVAL_PENDING, OrderStatus.PICKED_UP, UserType.VENDOR)

    def test_completion_confirmed_by_resident(self, machine: OrderStateMachine) -> None:
        machine.validate(OrderStatus.DELIVERED, OrderStatus.COMPLETED, UserType.RESIDENT)
        with pytest.raises(UnauthorizedError):
            machine.validate(OrderStatus.DELIVERED, OrderStatus.COMPLETED, UserType.VENDOR)

    def test_cancel_before_pickup_by_anyone(self, machine: OrderStateMachine) -> None:
        for role in UserType:
            machine.validate(OrderStatus.PICKUP_IN_PROGRESS, OrderStatus.CANCELLED, role)

    def test_cancel_after_pickup_admins_only(self, machine: OrderStateMachine) -> None:
        machine.validate(OrderStatus.PROCESSING_IN_PROGRESS, OrderStatus.CANCELLED, UserType.SOCIETY_ADMIN)
        for role in (UserType.RESIDENT, UserType.VENDOR):
            with pytest.raises(UnauthorizedError):
                machine.validate(OrderStatus.PICKED_UP, OrderStatus.CANCELLED, role)

    def test_invalid_transition_checked_before_role(self, machine: OrderStateMachine) -> None:
        """Нарушение цепочки сообщается раньше проверки роли."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.validate(OrderStatus.COMPLETED, OrderStatus.CANCELLED, UserType.PLATFORM_ADMIN)

        assert exc_info.value.details == {"current_status": "COMPLETED", "requested_status": "CANCELLED"}

    def test_every_valid_transition_has_roles(self) -> None:
        for current, target in itertools.product(OrderStatus, repeat=2):
            if can_transition(current, target):
                assert DEFAULT_TRANSITION_ROLES[(current, target)], (current, target)

    def test_overrides(self) -> None:
        machine = OrderStateMachine(parse_transition_roles({"DELIVERED->COMPLETED": ["VENDOR"]}))

        machine.validate(OrderStatus.DELIVERED, OrderStatus.COMPLETED, UserType.VENDOR)
        with pytest.raises(UnauthorizedError):
            machine.validate(OrderStatus.DELIVERED, OrderStatus.COMPLETED, UserType.RESIDENT)

    def test_item_edit_roles_default(self, machine: OrderStateMachine) -> None:
        for role in (UserType.RESIDENT, UserType.VENDOR, UserType.PLATFORM_ADMIN):
            machine.validate_item_edit(role)
        with pytest.raises(UnauthorizedError) as exc_info:
            machine.validate_item_edit(UserType.SOCIETY_ADMIN)
        assert exc_info.value.details["allowed_roles"] == ["PLATFORM_ADMIN", "RESIDENT", "VENDOR"]

    def test_item_edit_roles_override(self) -> None:
        machine = OrderStateMachine(item_edit_roles=[UserType.VENDOR])

        machine.validate_item_edit(UserType.VENDOR)
        with pytest.raises(UnauthorizedError):
            machine.validate_item_edit(UserType.RESIDENT)


class TestParseTransitionRoles:
    """Разбор переопределений из конфигурации."""

    def test_parses_keys(self) -> None:
        parsed = parse_transition_roles({" PICKED_UP -> CANCELLED ": ["PLATFORM_ADMIN"]})

        assert parsed == {(OrderStatus.PICKED_UP, OrderStatus.CANCELLED): frozenset({UserType.PLATFORM_ADMIN})}

    @pytest.mark.parametrize(
        "overrides",
        [
            {"BOOKING_CREATED": ["VENDOR"]},
            {"BOOKING_CREATED->PICKED_UP": ["VENDOR"]},
            {"UNKNOWN->CANCELLED": ["VENDOR"]},
            {"DELIVERED->COMPLETED": ["JANITOR"]},
        ],
    )
    def test_rejects_invalid(self, overrides: dict) -> None:
        with pytest.raises(ValueError):
            parse_transition_roles(overrides)


class TestAggregateStatus:
    """Агрегированный статус заказа с частичной доставкой."""

    def test_least_advanced_wins(self) -> None:
        assert aggregate_status([OrderStatus.DELIVERED, OrderStatus.PROCESSING_IN_PROGRESS]) == (
            OrderStatus.PROCESSING_IN_PROGRESS
        )

    def test_cancelled_children_ignored(self) -> None:
        assert aggregate_status([OrderStatus.CANCELLED, OrderStatus.READY_FOR_DELIVERY]) == (
            OrderStatus.READY_FOR_DELIVERY
        )

    def test_all_cancelled(self) -> None:
        assert aggregate_status([OrderStatus.CANCELLED, OrderStatus.CANCELLED]) == OrderStatus.CANCELLED

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError):
            aggregate_status([])

    def test_property_over_all_pairs_and_triples(self) -> None:
        """Агрегат никогда не опережает ни одну неотменённую услугу."""
        for size in (1, 2, 3):
            for statuses in itertools.product(OrderStatus, repeat=size):
                result = aggregate_status(statuses)
                active = [s for s in statuses if s != OrderStatus.CANCELLED]
                if not active:
                    assert result == OrderStatus.CANCELLED
                    continue
                assert result in active
                assert all(progress(result) <= progress(s) for s in active)
