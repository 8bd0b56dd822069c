#!/usr/bin/env python3
# main.py
"""
Главная точка входа приложения Society Services.
Запускает Orders API, сервис уведомлений или воркер в зависимости от аргументов.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from society_app.config import settings
from society_app.common.logger import setup_logging, log_info, log_error
from society_app.common.constants import TypeMsg


VALID_MODES = ("orders_api", "notifications", "worker", "all")

# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def _serve(app_path: str, host: str, port: int, title: str) -> None:
    import uvicorn

    await log_info(f"Запуск {title} на {host}:{port}...", type_msg=TypeMsg.INFO)
    config = uvicorn.Config(
        app_path,
        host=host,
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info(f"{title}: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_orders_api() -> None:
    """Запускает Orders API."""
    await _serve(
        "society_app.services.orders_api.app:app",
        settings.deployment.ORDERS_API_HOST,
        settings.deployment.ORDERS_API_PORT,
        "Orders API",
    )


async def run_notifications() -> None:
    """Запускает сервис уведомлений (HTTP + NotificationWorker)."""
    await _serve(
        "society_app.notifications.app:app",
        settings.deployment.NOTIFICATIONS_HOST,
        settings.deployment.NOTIFICATIONS_PORT,
        "Notifications",
    )


async def run_worker() -> None:
    """Запускает NotificationWorker без HTTP сервиса."""
    from society_app.worker.runner import run_workers

    await run_workers(init_infra=True, stop_event=_shutdown_event)


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (orders_api, notifications, worker, all).
              Если None, берётся COMPONENT_MODE из настроек.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    if mode is None:
        mode = settings.system.COMPONENT_MODE
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим: {mode}")
        return

    await log_info(
        f"Society Services v{settings.system.VERSION} | запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    try:
        if mode == "orders_api":
            await run_orders_api()
        elif mode == "notifications":
            await run_notifications()
        elif mode == "worker":
            await run_worker()
        elif mode == "all":
            # Воркер уведомлений работает внутри сервиса notifications
            _running_tasks = [
                asyncio.create_task(run_orders_api()),
                asyncio.create_task(run_notifications()),
            ]
            await asyncio.gather(*_running_tasks, return_exceptions=True)

    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        if _running_tasks:
            for task in _running_tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*_running_tasks, return_exceptions=True)
            _running_tasks.clear()
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    """Выводит справку по использованию."""
    print("""
Society Services: заказы услуг жителей и уведомления

Использование:
    python main.py [mode]

Режимы:
    orders_api     - Orders API (:8080)
    notifications  - Notifications Service + NotificationWorker (:8083)
    worker         - только NotificationWorker
    all            - Orders API и Notifications одновременно

Без аргумента используется COMPONENT_MODE из config.json или окружения.
    """)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in VALID_MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
