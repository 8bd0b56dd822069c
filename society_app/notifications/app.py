# society_app/notifications/app.py
"""
FastAPI приложение сервиса уведомлений.
Принимает запросы на push и запускает NotificationWorker для событий из RabbitMQ.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from society_app import __version__
from society_app.common.logger import log_error, log_info, log_warning
from society_app.notifications.push import PushForwarder
from society_app.shared.models.api import NotificationRequest


# Глобальные объекты сервиса
_forwarder: PushForwarder | None = None
_notification_worker = None


def set_forwarder(forwarder: PushForwarder | None) -> None:
    global _forwarder
    _forwarder = forwarder


def get_forwarder() -> PushForwarder:
    if _forwarder is None:
        raise RuntimeError("PushForwarder не инициализирован")
    return _forwarder


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Инициализация при старте сервиса.
    Поднимает БД и RabbitMQ, создаёт PushForwarder и запускает NotificationWorker.
    """
    global _notification_worker

    from society_app.core.users.repository import UserRepository
    from society_app.infra.database import close_db, init_db
    from society_app.infra.event_bus import close_event_bus, init_event_bus
    from society_app.worker.notifications import NotificationWorker

    db = await init_db(apply_schema=False)
    await init_event_bus()

    forwarder = PushForwarder.from_settings(UserRepository(db))
    set_forwarder(forwarder)

    _notification_worker = NotificationWorker(forwarder=forwarder)
    await _notification_worker.start()
    await log_info("Сервис уведомлений запущен", logger_name="notifications")

    yield

    await _notification_worker.stop()
    _notification_worker = None
    await forwarder.close()
    set_forwarder(None)
    await close_event_bus()
    await close_db()
    await log_info("Сервис уведомлений остановлен", logger_name="notifications")


# =============================================================================
# ПРИЛОЖЕНИЕ
# =============================================================================

app = FastAPI(
    title="Society Notifications Service",
    description="Пересылка push-уведомлений в FCM (HTTP API + RabbitMQ Worker)",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# ОБРАБОТЧИКИ ОШИБОК
# =============================================================================
# Любая ошибка, кроме отсутствия токена, отдаётся как 500 {"error": <сообщение>}

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    await log_warning(f"Некорректный запрос на push: {message}", logger_name="notifications")
    return JSONResponse(status_code=500, content={"error": message or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(f"Ошибка обработки push: {exc}", logger_name="notifications", exc_info=True)
    return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


@app.get("/health")
async def health_check() -> dict:
    """Проверка здоровья сервиса."""
    return {
        "status": "healthy",
        "service": "notifications",
        "version": __version__,
    }


@app.post("/functions/v1/send-notification")
async def send_notification(notification: NotificationRequest) -> JSONResponse:
    """
    Отправляет push-уведомление пользователю.

    Returns:
        200 с ответом FCM, 404 если нет токена, 500 при любой другой ошибке
    """
    status_code, body = await get_forwarder().send(notification)
    return JSONResponse(status_code=status_code, content=body)


# =============================================================================
# ЗАПУСК
# =============================================================================

async def run_notifications(
    host: str = "0.0.0.0",
    port: int = 8083,
    reload: bool = False,
) -> None:
    """Запускает сервис уведомлений."""
    import uvicorn

    config = uvicorn.Config(
        "society_app.notifications.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()
