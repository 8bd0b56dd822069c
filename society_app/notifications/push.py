# society_app/notifications/push.py
"""
Отправка push-уведомлений через Firebase Cloud Messaging.

Результат всегда пара (HTTP статус, тело ответа):
- нет токена устройства -> 404 {"error": "No FCM token found"}
- любая другая ошибка  -> 500 {"error": <сообщение>}
- успех                -> 200 {"success": true, "fcm_result": <ответ FCM>}
Одна попытка на вызов, без повторов.
"""

from __future__ import annotations

from typing import Any

import httpx

from society_app.common.logger import log_debug, log_error, log_warning
from society_app.core.users.repository import UserRepository
from society_app.shared.models.api import NotificationRequest


NO_TOKEN_ERROR = "No FCM token found"

PushResult = tuple[int, dict[str, Any]]


class PushForwarder:
    """Пересылает уведомление пользователя в FCM по его токену."""

    def __init__(
        self,
        users: UserRepository,
        client: httpx.AsyncClient,
        url: str,
        server_key: str,
    ) -> None:
        self._users = users
        self._client = client
        self._url = url
        self._server_key = server_key

    @classmethod
    def from_settings(cls, users: UserRepository) -> "PushForwarder":
        from society_app.config import settings

        cfg = settings.fcm
        return cls(
            users=users,
            client=httpx.AsyncClient(timeout=cfg.FCM_TIMEOUT),
            url=cfg.FCM_URL,
            server_key=cfg.FCM_SERVER_KEY,
        )

    async def close(self) -> None:
        """Закрыть HTTP клиент."""
        await self._client.aclose()

    async def send(self, request: NotificationRequest) -> PushResult:
        """
        Отправляет уведомление. Не выбрасывает исключений.

        Returns:
            (HTTP статус, тело ответа)
        """
        try:
            token = await self._users.get_fcm_token(request.user_id)
            if not token:
                await log_warning(
                    f"У пользователя {request.user_id} нет FCM токена",
                    logger_name="push",
                )
                return 404, {"error": NO_TOKEN_ERROR}

            response = await self._client.post(
                self._url,
                json={
                    "to": token,
                    "notification": {"title": request.title, "body": request.body},
                    "data": request.data or {},
                },
                headers={"Authorization": f"key={self._server_key}"},
            )
            fcm_result = response.json()
        except Exception as e:
            await log_error(
                f"Ошибка отправки push пользователю {request.user_id}: {e}",
                logger_name="push",
            )
            return 500, {"error": str(e) or type(e).__name__}

        if response.is_error:
            await log_warning(
                f"FCM ответил {response.status_code} для пользователя {request.user_id}",
                logger_name="push",
                extra={"fcm_result": fcm_result},
            )
        else:
            await log_debug(f"Push отправлен пользователю {request.user_id}", logger_name="push")
        return 200, {"success": True, "fcm_result": fcm_result}
