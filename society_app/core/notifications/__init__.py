# society_app/core/notifications/__init__.py
"""
Уведомления: публикация событий и правила адресатов.
"""

from society_app.core.notifications.rules import PushMessage, Recipient, build_messages
from society_app.core.notifications.service import NotificationService

__all__ = ["NotificationService", "PushMessage", "Recipient", "build_messages"]
