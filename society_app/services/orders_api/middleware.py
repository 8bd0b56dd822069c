# society_app/services/orders_api/middleware.py
"""
HTTP middleware и обработчики ошибок Orders API.

Каждый запрос получает request_id (из X-Request-ID или новый),
который попадает в логи и в meta ответа.
Ошибки сервиса превращаются в конверт ApiResponse.error.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from society_app.common.constants import REQUEST_ID_HEADER
from society_app.common.logger import log_error, log_info, log_warning, request_id_var
from society_app.core.errors import ServiceError
from society_app.shared.models.api import ApiResponse


def current_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request_id_var.get()


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    body = ApiResponse[None].fail(code, message, details=details, request_id=request_id)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
    )


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Выставляет request_id, замеряет время и логирует запрос."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    request.state.request_id = request_id
    token = request_id_var.set(request_id)
    started = time.perf_counter()
    try:
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        await log_info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)",
            logger_name="orders_api",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_ms": round(elapsed_ms, 1),
            },
        )
        return response
    finally:
        request_id_var.reset(token)


# =============================================================================
# ОБРАБОТЧИКИ ОШИБОК
# =============================================================================

async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    await log_warning(
        f"{request.method} {request.url.path}: {exc.code} {exc.message}",
        logger_name="orders_api",
    )
    return error_response(
        exc.status_code,
        exc.code,
        exc.message,
        details=exc.details,
        request_id=current_request_id(request),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_response(
        422,
        "VALIDATION_ERROR",
        "Некорректный запрос",
        details={"errors": errors},
        request_id=current_request_id(request),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(
        f"Необработанная ошибка {request.method} {request.url.path}: {exc}",
        logger_name="orders_api",
        exc_info=True,
    )
    return error_response(
        500,
        "INTERNAL_ERROR",
        "Внутренняя ошибка сервера",
        request_id=current_request_id(request),
    )


def register_middleware(app: FastAPI) -> None:
    """Подключает middleware и обработчики ошибок к приложению."""
    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
