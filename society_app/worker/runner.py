# society_app/worker/runner.py
"""
Запускалка воркеров.
"""

from __future__ import annotations

import asyncio
from typing import List

from society_app.common.logger import log_error, log_info
from society_app.core.users.repository import UserRepository
from society_app.infra.database import close_db, get_db, init_db
from society_app.infra.event_bus import close_event_bus, init_event_bus
from society_app.notifications.push import PushForwarder
from society_app.worker.base import BaseWorker
from society_app.worker.notifications import NotificationWorker


async def run_workers(init_infra: bool = True, stop_event: asyncio.Event | None = None) -> None:
    """
    Запускает NotificationWorker отдельно от HTTP сервиса уведомлений.

    Args:
        init_infra: Если True, инициализирует инфраструктуру (БД, RabbitMQ).
                    В режиме all инфраструктура уже поднята, передаётся False.
        stop_event: Событие остановки; без него воркер работает до отмены задачи
    """
    await log_info("Запуск воркеров...", logger_name="worker")

    if init_infra:
        await init_db(apply_schema=False)
        await init_event_bus()

    users = UserRepository(get_db())
    forwarder = PushForwarder.from_settings(users)
    workers: List[BaseWorker] = [
        NotificationWorker(forwarder=forwarder, users=users),
    ]
    stop_event = stop_event or asyncio.Event()

    try:
        for worker in workers:
            await worker.start()

        await log_info(f"Запущено {len(workers)} воркеров", logger_name="worker")
        await stop_event.wait()

    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", logger_name="worker")
        raise
    except Exception as e:
        await log_error(f"Критическая ошибка воркеров: {e}", logger_name="worker", exc_info=True)
        raise
    finally:
        for worker in workers:
            await worker.stop()
        await forwarder.close()

        if init_infra:
            await close_event_bus()
            await close_db()

        await log_info("Воркеры остановлены", logger_name="worker")


def main() -> None:
    """Точка входа."""
    try:
        asyncio.run(run_workers())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
