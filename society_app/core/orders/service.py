# society_app/core/orders/service.py
"""
Сервис заказов.
Создание заказа, переходы статусов (всего заказа и отдельных услуг),
исправление количества и чтение с кэшем в Redis.

Каждое изменение выполняется в одной транзакции:
SELECT ... FOR UPDATE -> проверка expected_status -> проверка перехода ->
UPDATE ... WHERE status = $expected. Уведомления публикуются после commit.
"""

from __future__ import annotations

import secrets
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable
from uuid import uuid4

from society_app.common.constants import ORDER_CACHE_PREFIX, WORKFLOW_CACHE_PREFIX
from society_app.common.logger import log_info, log_warning
from society_app.core.catalog.repository import CatalogRepository
from society_app.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from society_app.core.notifications.service import NotificationService
from society_app.core.orders.eligibility import check_eligibility, ensure_eligible
from society_app.core.orders.models import Actor
from society_app.core.orders.pricing import PriceCalculator
from society_app.core.orders.repository import OrderFilters, OrderRepository
from society_app.core.orders.state_machine import (
    OrderStateMachine,
    aggregate_status,
    is_before,
    is_terminal,
    reached,
)
from society_app.core.payments.service import PaymentService
from society_app.core.users.repository import UserRepository
from society_app.infra.redis_client import RedisClient
from society_app.shared.models.api import (
    CreateOrderDTO,
    EligibilityResult,
    ItemCountDTO,
    OrderItemDTO,
    PaginatedResponse,
    PriceEstimate,
)
from society_app.shared.models.common import PaginationParams
from society_app.shared.models.enums import DeliveryPreference, OrderStatus, UserType
from society_app.shared.models.order import Order, OrderDetails, OrderItem, OrderServiceStatus
from society_app.shared.models.workflow import ServiceWorkflow


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """
    Сервис заказов.
    Управляет жизненным циклом заказа и согласованностью его сумм.
    """

    def __init__(
        self,
        repository: OrderRepository,
        catalog: CatalogRepository,
        users: UserRepository,
        payments: PaymentService,
        notifications: NotificationService,
        cache: RedisClient | None = None,
        state_machine: OrderStateMachine | None = None,
        pricing: PriceCalculator | None = None,
        *,
        default_turnaround_hours: int = 48,
        order_number_prefix: str = "ORD",
        order_ttl: int = 300,
        workflow_ttl: int = 3600,
    ) -> None:
        self._repo = repository
        self._catalog = catalog
        self._users = users
        self._payments = payments
        self._notifications = notifications
        self._cache = cache
        self._machine = state_machine or OrderStateMachine()
        self._pricing = pricing or PriceCalculator()
        self._default_turnaround = timedelta(hours=default_turnaround_hours)
        self._order_number_prefix = order_number_prefix
        self._order_ttl = order_ttl
        self._workflow_ttl = workflow_ttl

    # =========================================================================
    # СОЗДАНИЕ
    # =========================================================================

    async def create_order(self, dto: CreateOrderDTO, actor: Actor) -> OrderDetails:
        """
        Создаёт заказ жителя.

        Raises:
            UnauthorizedError: актор не житель этого общества
            NotFoundError: исполнитель или услуга не найдены
            VendorNotEligibleError: исполнитель не может оказать одну из услуг
            RateNotFoundError / ValidationFailedError: ошибки расчёта цены
        """
        if actor.role != UserType.RESIDENT:
            raise UnauthorizedError(
                "Создавать заказы могут только жители",
                details={"role": actor.role.value},
            )
        resident = await self._users.get_active_resident_by_user(actor.user_id, dto.society_id)
        if resident is None:
            raise UnauthorizedError(
                f"Пользователь {actor.user_id} не зарегистрирован как житель общества {dto.society_id}",
                details={"user_id": actor.user_id, "society_id": dto.society_id},
            )

        vendor = await self._catalog.get_vendor(dto.vendor_id)
        if vendor is None:
            raise NotFoundError(f"Исполнитель {dto.vendor_id} не найден", details={"vendor_id": dto.vendor_id})

        service_ids = list(dict.fromkeys(item.service_id for item in dto.items))
        offerings = await self._catalog.get_vendor_offerings(vendor.vendor_id)
        ensure_eligible(
            vendor,
            service_ids,
            offerings,
            society_id=dto.society_id,
            category_id=dto.category_id,
        )

        rate_cards = await self._catalog.get_rate_cards(vendor.vendor_id, service_ids)
        estimate = self._pricing.compute_estimate(vendor.vendor_id, dto.items, rate_cards)

        services = {s.service_id: s for s in await self._catalog.get_services(service_ids)}
        missing = [sid for sid in service_ids if sid not in services]
        if missing:
            raise NotFoundError(f"Услуги не найдены: {missing}", details={"service_ids": missing})

        pickup = dto.pickup_datetime
        if pickup.tzinfo is None:
            pickup = pickup.replace(tzinfo=timezone.utc)
        service_deadlines = {
            sid: pickup + self._turnaround(services[sid].estimated_duration_hours)
            for sid in service_ids
        }

        order_data: dict[str, Any] = {
            "order_id": str(uuid4()),
            "order_number": self._generate_order_number(),
            "resident_id": resident.resident_id,
            "vendor_id": vendor.vendor_id,
            "society_id": dto.society_id,
            "status": OrderStatus.BOOKING_CREATED,
            "has_multiple_services": len(service_ids) > 1,
            "estimated_price": estimate.estimated_price,
            "pickup_datetime": pickup,
            "expected_delivery_date": max(service_deadlines.values()),
            "pickup_address": dto.pickup_address.strip(),
            "delivery_preference": dto.delivery_preference,
        }
        item_rows = [
            {
                "service_id": line.service_id,
                "item_name": line.item_name,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
            }
            for line in estimate.lines
        ]

        async with self._repo.transaction() as conn:
            order = await self._repo.insert_order(conn, order_data)
            items = await self._repo.insert_items(conn, order.order_id, item_rows)
            children: list[OrderServiceStatus] = []
            if dto.delivery_preference == DeliveryPreference.PARTIAL:
                children = await self._repo.insert_service_statuses(
                    conn,
                    order.order_id,
                    [
                        {
                            "service_id": sid,
                            "item_count": count,
                            "total_amount": amount,
                            "expected_delivery_date": service_deadlines[sid],
                        }
                        for sid, (count, amount) in _service_totals(items).items()
                    ],
                )

        await log_info(
            f"Создан заказ {order.order_number} ({len(items)} поз., {order.estimated_price})",
            logger_name="orders",
        )
        await self._notifications.order_created(order)
        return OrderDetails.build(order, items, children)

    # =========================================================================
    # ПЕРЕХОДЫ СТАТУСОВ
    # =========================================================================

    async def advance(
        self,
        order_id: str,
        target: OrderStatus,
        actor: Actor,
        expected_status: OrderStatus | None = None,
        item_counts: list[ItemCountDTO] | None = None,
    ) -> OrderDetails:
        """
        Переводит заказ в следующий статус (или отменяет).
        Для PARTIAL двигает наименее продвинутые услуги и пересчитывает агрегат.

        Raises:
            NotFoundError, ConflictError, InvalidTransitionError,
            UnauthorizedError, ValidationFailedError
        """
        async with self._repo.transaction() as conn:
            order = await self._lock_order(conn, order_id)
            _check_expected(order.status, expected_status)
            self._machine.validate(order.status, target, actor.role)
            previous = order.status

            items = await self._repo.get_items(order_id, conn)
            children = (
                await self._repo.get_service_statuses(order_id, conn, for_update=True)
                if order.is_partial else []
            )

            if target == OrderStatus.CANCELLED:
                moving = [c for c in children if not is_terminal(c.status)]
            else:
                moving = [c for c in children if c.status == previous]

            if previous == OrderStatus.COUNT_APPROVAL_PENDING and target == OrderStatus.PICKED_UP:
                scope = {c.service_id for c in moving} if order.is_partial else None
                items, changed = await self._apply_item_counts(conn, items, item_counts, scope)
                if changed:
                    order = await self._recompute_totals(conn, order, items)

            now = utc_now()
            for child in moving:
                updated_child = await self._move_child(conn, child, target, now)
                children = _replace_child(children, updated_child)

            new_status = target
            if order.is_partial and target != OrderStatus.CANCELLED:
                new_status = aggregate_status(c.status for c in children)
            order = await self._set_order_status(conn, order, previous, new_status, now)

        await log_info(
            f"Заказ {order.order_number}: {previous} -> {order.status} ({actor.role})",
            logger_name="orders",
        )
        await self._invalidate(order_id)
        await self._notifications.order_status_changed(order, previous, actor.role)
        return OrderDetails.build(order, items, children)

    async def advance_service(
        self,
        order_id: str,
        service_id: int,
        target: OrderStatus,
        actor: Actor,
        expected_status: OrderStatus | None = None,
        item_counts: list[ItemCountDTO] | None = None,
    ) -> OrderDetails:
        """
        Переводит одну услугу PARTIAL-заказа и пересчитывает статус заказа.
        expected_status относится к статусу услуги.
        """
        async with self._repo.transaction() as conn:
            order = await self._lock_order(conn, order_id)
            if not order.is_partial:
                raise ValidationFailedError(
                    f"Заказ {order.order_number} доставляется целиком, статусы услуг не ведутся",
                    details={"order_id": order_id, "delivery_preference": order.delivery_preference.value},
                )
            if is_terminal(order.status):
                raise InvalidTransitionError(
                    f"Заказ {order.order_number} в статусе {order.status} не изменяется",
                    details={"current_status": order.status.value, "requested_status": target.value},
                )

            children = await self._repo.get_service_statuses(order_id, conn, for_update=True)
            child = next((c for c in children if c.service_id == service_id), None)
            if child is None:
                raise NotFoundError(
                    f"Услуга {service_id} не входит в заказ {order.order_number}",
                    details={"order_id": order_id, "service_id": service_id},
                )
            _check_expected(child.status, expected_status)
            self._machine.validate(child.status, target, actor.role)
            previous_child = child.status
            previous = order.status

            items = await self._repo.get_items(order_id, conn)
            if previous_child == OrderStatus.COUNT_APPROVAL_PENDING and target == OrderStatus.PICKED_UP:
                items, changed = await self._apply_item_counts(conn, items, item_counts, {service_id})
                if changed:
                    order = await self._recompute_totals(conn, order, items)

            now = utc_now()
            updated_child = await self._move_child(conn, child, target, now)
            children = _replace_child(children, updated_child)

            new_status = aggregate_status(c.status for c in children)
            if new_status != previous:
                order = await self._set_order_status(conn, order, previous, new_status, now)

        await log_info(
            f"Заказ {order.order_number}, услуга {service_id}: {previous_child} -> {target}",
            logger_name="orders",
        )
        await self._invalidate(order_id)
        await self._notifications.order_service_status_changed(order, service_id, previous_child, target)
        if order.status != previous:
            await self._notifications.order_status_changed(order, previous, actor.role)
        return OrderDetails.build(order, items, children)

    async def update_item_quantity(
        self,
        order_id: str,
        item_id: int,
        quantity: int,
        actor: Actor,
        expected_status: OrderStatus | None = None,
    ) -> OrderDetails:
        """
        Исправляет количество позиции до забора вещей (до PICKED_UP).
        Для PARTIAL-заказа до PICKED_UP должна быть и услуга самой позиции.
        Пересчитывает сумму позиции, итоги услуги и estimated_price.
        """
        self._machine.validate_item_edit(actor.role)
        async with self._repo.transaction() as conn:
            order = await self._lock_order(conn, order_id)
            _check_expected(order.status, expected_status)
            if not is_before(order.status, OrderStatus.PICKED_UP):
                raise InvalidTransitionError(
                    f"Количество можно менять только до {OrderStatus.PICKED_UP}, заказ в статусе {order.status}",
                    details={"current_status": order.status.value},
                )

            items = await self._repo.get_items(order_id, conn)
            item = next((i for i in items if i.item_id == item_id), None)
            if item is None:
                raise NotFoundError(
                    f"Позиция {item_id} не найдена в заказе {order.order_number}",
                    details={"order_id": order_id, "item_id": item_id},
                )

            children = await self._repo.get_service_statuses(order_id, conn, for_update=True) if order.is_partial else []
            child = next((c for c in children if c.service_id == item.service_id), None)
            if child is not None and not is_before(child.status, OrderStatus.PICKED_UP):
                raise InvalidTransitionError(
                    f"Количество услуги {item.service_id} уже подтверждено, услуга в статусе {child.status}",
                    details={"service_id": item.service_id, "current_status": child.status.value},
                )

            if item.quantity != quantity:
                saved = await self._repo.update_item_quantity(conn, item.with_quantity(quantity))
                items = [saved if i.item_id == item_id else i for i in items]
                order = await self._recompute_totals(conn, order, items)

            children = await self._repo.get_service_statuses(order_id, conn) if order.is_partial else []

        await log_info(
            f"Заказ {order.order_number}: позиция {item_id} {item.quantity} -> {quantity} ({actor.role})",
            logger_name="orders",
        )
        await self._invalidate(order_id)
        return OrderDetails.build(order, items, children)

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_order(self, order_id: str) -> OrderDetails:
        """Заказ с позициями и статусами услуг (через кэш)."""
        cache_key = f"{ORDER_CACHE_PREFIX}:{order_id}"
        cached = await self._cache_get(cache_key, OrderDetails)
        if cached is not None:
            return cached

        order = await self._repo.get(order_id)
        if order is None:
            raise NotFoundError(f"Заказ {order_id} не найден", details={"order_id": order_id})
        items = await self._repo.get_items(order_id)
        children = await self._repo.get_service_statuses(order_id) if order.is_partial else []
        details = OrderDetails.build(order, items, children)

        await self._cache_set(cache_key, details, self._order_ttl)
        return details

    async def list_orders(self, filters: OrderFilters, page: int = 1, limit: int = 20) -> PaginatedResponse[Order]:
        params = PaginationParams(page=page, limit=limit)
        orders, total = await self._repo.list_orders(filters, limit=params.limit, offset=params.offset)
        return PaginatedResponse[Order].create(orders, total, params)

    async def get_workflow(self, service_id: int) -> ServiceWorkflow:
        cache_key = f"{WORKFLOW_CACHE_PREFIX}:{service_id}"
        cached = await self._cache_get(cache_key, ServiceWorkflow)
        if cached is not None:
            return cached

        workflow = await self._catalog.get_workflow(service_id)
        if workflow is None:
            raise NotFoundError(
                f"Шаблон процесса для услуги {service_id} не найден",
                details={"service_id": service_id},
            )
        await self._cache_set(cache_key, workflow, self._workflow_ttl)
        return workflow

    async def estimate(self, vendor_id: str, items: Iterable[OrderItemDTO]) -> PriceEstimate:
        """Предварительный расчёт стоимости без создания заказа."""
        vendor = await self._catalog.get_vendor(vendor_id)
        if vendor is None:
            raise NotFoundError(f"Исполнитель {vendor_id} не найден", details={"vendor_id": vendor_id})
        items = list(items)
        rate_cards = await self._catalog.get_rate_cards(vendor_id, {i.service_id for i in items})
        return self._pricing.compute_estimate(vendor_id, items, rate_cards)

    async def check_eligibility(self, vendor_id: str, service_id: int) -> EligibilityResult:
        vendor = await self._catalog.get_vendor(vendor_id)
        if vendor is None:
            raise NotFoundError(f"Исполнитель {vendor_id} не найден", details={"vendor_id": vendor_id})
        offerings = await self._catalog.get_vendor_offerings(vendor_id)
        return check_eligibility(vendor, service_id, offerings)

    # =========================================================================
    # ВНУТРЕННИЕ ШАГИ
    # =========================================================================

    async def _lock_order(self, conn: Any, order_id: str) -> Order:
        order = await self._repo.get_for_update(conn, order_id)
        if order is None:
            raise NotFoundError(f"Заказ {order_id} не найден", details={"order_id": order_id})
        return order

    async def _move_child(
        self,
        conn: Any,
        child: OrderServiceStatus,
        target: OrderStatus,
        now: datetime,
    ) -> OrderServiceStatus:
        updated = await self._repo.compare_and_set_service_status(
            conn,
            child.order_id,
            child.service_id,
            child.status,
            target,
            actual_delivery_date=now if target == OrderStatus.DELIVERED else None,
        )
        if updated is None:
            raise ConflictError(
                f"Статус услуги {child.service_id} изменился конкурентно",
                details={"service_id": child.service_id, "expected_status": child.status.value},
            )
        return updated

    async def _set_order_status(
        self,
        conn: Any,
        order: Order,
        previous: OrderStatus,
        new_status: OrderStatus,
        now: datetime,
    ) -> Order:
        """CAS статуса заказа; при достижении DELIVERED фиксирует цену и создаёт платёж."""
        delivered = reached(new_status, OrderStatus.DELIVERED)
        updated = await self._repo.compare_and_set_status(
            conn,
            order.order_id,
            previous,
            new_status,
            actual_delivery_date=now if delivered else None,
            final_price=order.estimated_price if delivered else None,
        )
        if updated is None:
            raise ConflictError(
                f"Статус заказа {order.order_number} изменился конкурентно",
                details={"order_id": order.order_id, "expected_status": previous.value},
            )
        if delivered:
            await self._payments.ensure_payment(updated, conn)
        return updated

    async def _apply_item_counts(
        self,
        conn: Any,
        items: list[OrderItem],
        item_counts: list[ItemCountDTO] | None,
        service_ids: set[int] | None,
    ) -> tuple[list[OrderItem], bool]:
        """
        Применяет подтверждённые количества к позициям (всех или указанных услуг).

        Returns:
            (актуальные позиции, были ли изменения)
        """
        if item_counts is None:
            raise ValidationFailedError(
                "Для перехода в PICKED_UP нужно подтвердить количество вещей",
                code="COUNT_CONFIRMATION_REQUIRED",
            )

        in_scope = {i.item_id: i for i in items if service_ids is None or i.service_id in service_ids}
        seen: set[int] = set()
        for count in item_counts:
            if count.item_id not in in_scope:
                raise ValidationFailedError(
                    f"Позиция {count.item_id} не относится к подтверждаемым услугам",
                    details={"item_id": count.item_id},
                )
            if count.item_id in seen:
                raise ValidationFailedError(
                    f"Позиция {count.item_id} указана дважды",
                    details={"item_id": count.item_id},
                )
            seen.add(count.item_id)

        corrected: dict[int, OrderItem] = {}
        for count in item_counts:
            item = in_scope[count.item_id]
            if item.quantity != count.quantity:
                corrected[item.item_id] = await self._repo.update_item_quantity(conn, item.with_quantity(count.quantity))

        if not corrected:
            return items, False
        return [corrected.get(i.item_id, i) for i in items], True

    async def _recompute_totals(self, conn: Any, order: Order, items: list[OrderItem]) -> Order:
        """Пересчитывает итоги услуг и estimated_price по позициям."""
        if order.is_partial:
            for service_id, (count, amount) in _service_totals(items).items():
                await self._repo.update_service_totals(conn, order.order_id, service_id, count, amount)
        total = sum((i.total_price for i in items), Decimal("0"))
        return await self._repo.update_estimated_price(conn, order.order_id, total)

    def _turnaround(self, duration_hours: int | None) -> timedelta:
        if duration_hours:
            return timedelta(hours=duration_hours)
        return self._default_turnaround

    def _generate_order_number(self) -> str:
        return f"{self._order_number_prefix}-{utc_now():%Y%m%d}-{secrets.token_hex(3).upper()}"

    # =========================================================================
    # КЭШ (ошибки Redis не влияют на результат)
    # =========================================================================

    async def _cache_get(self, key: str, model_class: type) -> Any:
        if self._cache is None:
            return None
        try:
            return await self._cache.get_model(key, model_class)
        except Exception as e:
            await log_warning(f"Кэш недоступен ({key}): {e}", logger_name="orders")
            return None

    async def _cache_set(self, key: str, value: Any, ttl: int) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set_model(key, value, ttl=ttl)
        except Exception as e:
            await log_warning(f"Не удалось записать кэш ({key}): {e}", logger_name="orders")

    async def _invalidate(self, order_id: str) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.delete(f"{ORDER_CACHE_PREFIX}:{order_id}")
        except Exception as e:
            await log_warning(f"Не удалось сбросить кэш заказа {order_id}: {e}", logger_name="orders")


def _check_expected(current: OrderStatus, expected: OrderStatus | None) -> None:
    if expected is not None and expected != current:
        raise ConflictError(
            f"Ожидался статус {expected}, текущий {current}",
            details={"expected_status": expected.value, "current_status": current.value},
        )


def _replace_child(children: list[OrderServiceStatus], updated: OrderServiceStatus) -> list[OrderServiceStatus]:
    return [updated if c.service_id == updated.service_id else c for c in children]


def _service_totals(items: Iterable[OrderItem]) -> dict[int, tuple[int, Decimal]]:
    """service_id -> (сумма количеств, сумма total_price)."""
    counts: dict[int, int] = defaultdict(int)
    amounts: dict[int, Decimal] = defaultdict(Decimal)
    for item in items:
        counts[item.service_id] += item.quantity
        amounts[item.service_id] += item.total_price
    return {sid: (counts[sid], amounts[sid]) for sid in counts}
