"""
Фоновые воркеры для обработки событий из RabbitMQ.
"""

from society_app.worker.base import BaseWorker
from society_app.worker.notifications import NotificationWorker

__all__ = ["BaseWorker", "NotificationWorker"]
