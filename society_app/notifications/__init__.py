"""
Сервис уведомлений: пересылка push в FCM.
"""

from society_app.notifications.push import NO_TOKEN_ERROR, PushForwarder

__all__ = ["NO_TOKEN_ERROR", "PushForwarder"]
