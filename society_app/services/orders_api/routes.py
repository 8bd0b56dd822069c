# society_app/services/orders_api/routes.py
"""
Маршруты Orders API (/api/v1).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from society_app.core.orders.models import Actor
from society_app.core.orders.repository import OrderFilters
from society_app.core.orders.service import OrderService
from society_app.core.payments.service import PaymentService
from society_app.services.orders_api.dependencies import get_actor, get_order_service, get_payment_service
from society_app.services.orders_api.middleware import current_request_id
from society_app.shared.models.api import (
    AdvanceStatusRequest,
    ApiResponse,
    CreateOrderDTO,
    EligibilityResult,
    EstimateRequest,
    PaginatedResponse,
    PriceEstimate,
    UpdateItemQuantityRequest,
)
from society_app.shared.models.enums import OrderStatus
from society_app.shared.models.order import Order, OrderDetails
from society_app.shared.models.payment import Payment, PaymentCallbackDTO
from society_app.shared.models.workflow import ServiceWorkflow


router = APIRouter()

OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
ActorDep = Annotated[Actor, Depends(get_actor)]


# === ORDERS ===

@router.post(
    "/orders",
    response_model=ApiResponse[OrderDetails],
    status_code=status.HTTP_201_CREATED,
    tags=["Orders"],
)
async def create_order(
    request: Request,
    dto: CreateOrderDTO,
    actor: ActorDep,
    service: OrderServiceDep,
) -> ApiResponse[OrderDetails]:
    """Создать заказ (только житель общества)."""
    order = await service.create_order(dto, actor)
    return ApiResponse[OrderDetails].ok(order, current_request_id(request))


@router.get("/orders", response_model=PaginatedResponse[Order], tags=["Orders"])
async def list_orders(
    service: OrderServiceDep,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    vendor_id: str | None = None,
    resident_id: str | None = None,
    society_id: int | None = None,
) -> PaginatedResponse[Order]:
    """Список заказов (новые первыми). limit ограничен MAX_PAGE_SIZE."""
    from society_app.config import settings

    page_size = min(limit or settings.orders.DEFAULT_PAGE_SIZE, settings.orders.MAX_PAGE_SIZE)
    filters = OrderFilters(
        status=status_filter,
        vendor_id=vendor_id,
        resident_id=resident_id,
        society_id=society_id,
    )
    return await service.list_orders(filters, page=page, limit=page_size)


@router.post("/orders/estimate", response_model=ApiResponse[PriceEstimate], tags=["Orders"])
async def estimate_order(
    request: Request,
    body: EstimateRequest,
    service: OrderServiceDep,
) -> ApiResponse[PriceEstimate]:
    """Рассчитать стоимость без создания заказа."""
    estimate = await service.estimate(body.vendor_id, body.items)
    return ApiResponse[PriceEstimate].ok(estimate, current_request_id(request))


@router.get("/orders/{order_id}", response_model=ApiResponse[OrderDetails], tags=["Orders"])
async def get_order(
    request: Request,
    order_id: str,
    service: OrderServiceDep,
) -> ApiResponse[OrderDetails]:
    order = await service.get_order(order_id)
    return ApiResponse[OrderDetails].ok(order, current_request_id(request))


@router.post("/orders/{order_id}/status", response_model=ApiResponse[OrderDetails], tags=["Orders"])
async def advance_order(
    request: Request,
    order_id: str,
    body: AdvanceStatusRequest,
    actor: ActorDep,
    service: OrderServiceDep,
) -> ApiResponse[OrderDetails]:
    """Перевести заказ в следующий статус или отменить."""
    order = await service.advance(
        order_id,
        body.status,
        actor,
        expected_status=body.expected_status,
        item_counts=body.item_counts,
    )
    return ApiResponse[OrderDetails].ok(order, current_request_id(request))


@router.post(
    "/orders/{order_id}/services/{service_id}/status",
    response_model=ApiResponse[OrderDetails],
    tags=["Orders"],
)
async def advance_order_service(
    request: Request,
    order_id: str,
    service_id: int,
    body: AdvanceStatusRequest,
    actor: ActorDep,
    service: OrderServiceDep,
) -> ApiResponse[OrderDetails]:
    """Перевести одну услугу заказа с частичной доставкой."""
    order = await service.advance_service(
        order_id,
        service_id,
        body.status,
        actor,
        expected_status=body.expected_status,
        item_counts=body.item_counts,
    )
    return ApiResponse[OrderDetails].ok(order, current_request_id(request))


@router.patch(
    "/orders/{order_id}/items/{item_id}",
    response_model=ApiResponse[OrderDetails],
    tags=["Orders"],
)
async def update_item_quantity(
    request: Request,
    order_id: str,
    item_id: int,
    body: UpdateItemQuantityRequest,
    actor: ActorDep,
    service: OrderServiceDep,
) -> ApiResponse[OrderDetails]:
    """Исправить количество позиции до забора вещей."""
    order = await service.update_item_quantity(
        order_id,
        item_id,
        body.quantity,
        actor,
        expected_status=body.expected_status,
    )
    return ApiResponse[OrderDetails].ok(order, current_request_id(request))


# === PAYMENTS ===

@router.get("/orders/{order_id}/payment", response_model=ApiResponse[Payment], tags=["Payments"])
async def get_order_payment(
    request: Request,
    order_id: str,
    payments: PaymentServiceDep,
) -> ApiResponse[Payment]:
    payment = await payments.get_payment(order_id)
    return ApiResponse[Payment].ok(payment, current_request_id(request))


@router.post("/payments/callback", response_model=ApiResponse[Payment], tags=["Payments"])
async def payment_callback(
    request: Request,
    body: PaymentCallbackDTO,
    payments: PaymentServiceDep,
) -> ApiResponse[Payment]:
    """Колбэк платёжного шлюза."""
    payment = await payments.handle_gateway_callback(body)
    return ApiResponse[Payment].ok(payment, current_request_id(request))


# === CATALOG ===

@router.get(
    "/vendors/{vendor_id}/services/{service_id}/eligibility",
    response_model=ApiResponse[EligibilityResult],
    tags=["Catalog"],
)
async def vendor_eligibility(
    request: Request,
    vendor_id: str,
    service_id: int,
    service: OrderServiceDep,
) -> ApiResponse[EligibilityResult]:
    result = await service.check_eligibility(vendor_id, service_id)
    return ApiResponse[EligibilityResult].ok(result, current_request_id(request))


@router.get(
    "/services/{service_id}/workflow",
    response_model=ApiResponse[ServiceWorkflow],
    tags=["Catalog"],
)
async def service_workflow(
    request: Request,
    service_id: int,
    service: OrderServiceDep,
) -> ApiResponse[ServiceWorkflow]:
    """Шаблон процесса услуги с упорядоченными шагами."""
    workflow = await service.get_workflow(service_id)
    return ApiResponse[ServiceWorkflow].ok(workflow, current_request_id(request))
