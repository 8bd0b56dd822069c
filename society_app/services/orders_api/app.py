# society_app/services/orders_api/app.py
"""
FastAPI приложение Orders API.

Endpoints:
- POST /api/v1/orders - создать заказ
- GET /api/v1/orders - список заказов
- GET /api/v1/orders/{id} - заказ с позициями и статусами услуг
- POST /api/v1/orders/{id}/status - переход статуса заказа
- POST /api/v1/orders/{id}/services/{service_id}/status - переход статуса услуги
- PATCH /api/v1/orders/{id}/items/{item_id} - исправить количество
- POST /api/v1/orders/estimate - расчёт стоимости
- GET /api/v1/orders/{id}/payment - платёж по заказу
- POST /api/v1/payments/callback - колбэк платёжного шлюза
- GET /api/v1/vendors/{vendor_id}/services/{service_id}/eligibility
- GET /api/v1/services/{service_id}/workflow
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from society_app import __version__
from society_app.common.logger import log_info, log_warning
from society_app.services.orders_api.dependencies import (
    cleanup_dependencies,
    get_db,
    init_dependencies,
)
from society_app.services.orders_api.middleware import current_request_id, error_response, register_middleware
from society_app.services.orders_api.routes import router
from society_app.shared.models.common import HealthStatus


_started_at = time.monotonic()


# === LIFESPAN ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    from society_app.infra.database import close_db, init_db
    from society_app.infra.event_bus import close_event_bus, init_event_bus
    from society_app.infra.redis_client import close_redis, init_redis

    await log_info("Запуск Orders API...", logger_name="orders_api")
    db = await init_db()
    try:
        redis = await init_redis()
    except Exception as e:
        # Кэш необязателен: без Redis чтения идут напрямую в БД
        await log_warning(f"Redis недоступен, кэш отключён: {e}", logger_name="orders_api")
        redis = None
    event_bus = await init_event_bus()

    await init_dependencies(db, redis, event_bus)

    yield

    await log_info("Остановка Orders API...", logger_name="orders_api")
    await cleanup_dependencies()
    await close_event_bus()
    if redis is not None:
        await close_redis()
    await close_db()


# === APP ===

app = FastAPI(
    title="Orders API",
    description="Заказы услуг жителей: жизненный цикл, цены, платежи.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_middleware(app)
app.include_router(router, prefix="/api/v1")


# === HEALTH CHECK ===

async def _dependencies_status() -> dict[str, str]:
    try:
        db = get_db()
    except RuntimeError:
        return {"postgres": "not_initialized"}
    return {"postgres": "ok" if await db.health_check() else "unavailable"}


@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    dependencies = await _dependencies_status()
    healthy = all(value == "ok" for value in dependencies.values())
    return HealthStatus(
        service="orders_api",
        status="healthy" if healthy else "degraded",
        version=__version__,
        uptime_seconds=round(time.monotonic() - _started_at, 1),
        dependencies=dependencies,
    )


@app.get("/ready", tags=["Health"])
async def readiness_check(request: Request) -> JSONResponse:
    """Готовность принимать трафик (БД доступна)."""
    dependencies = await _dependencies_status()
    if dependencies.get("postgres") != "ok":
        return error_response(
            503,
            "NOT_READY",
            "Сервис не готов",
            details=dependencies,
            request_id=current_request_id(request),
        )
    return JSONResponse({"status": "ready", "dependencies": dependencies})
