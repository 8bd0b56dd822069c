# tests/notifications/test_app.py
"""
Тесты HTTP API сервиса уведомлений.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from society_app import __version__
from society_app.notifications.app import app, get_forwarder, set_forwarder


@pytest.fixture
def forwarder() -> Generator[AsyncMock, None, None]:
    """Подменяет PushForwarder (lifespan в тестах не запускается)."""
    mock = AsyncMock()
    set_forwarder(mock)
    yield mock
    set_forwarder(None)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class TestNotificationsApp:
    """Тесты для эндпоинтов сервиса уведомлений."""

    def test_health_check(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "notifications", "version": __version__}

    def test_send_notification(self, client: TestClient, forwarder: AsyncMock) -> None:
        forwarder.send.return_value = (200, {"success": True, "fcm_result": {"success": 1}})

        response = client.post(
            "/functions/v1/send-notification",
            json={"user_id": "user-1", "title": "Hi", "body": "Body", "data": {"order_id": "o-1"}},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "fcm_result": {"success": 1}}
        sent = forwarder.send.call_args.args[0]
        assert sent.user_id == "user-1"
        assert sent.data == {"order_id": "o-1"}

    @pytest.mark.parametrize(
        "result",
        [(404, {"error": "No FCM token found"}), (500, {"error": "boom"})],
    )
    def test_forwarder_status_passed_through(self, client: TestClient, forwarder: AsyncMock, result) -> None:
        forwarder.send.return_value = result

        response = client.post("/functions/v1/send-notification", json={"user_id": "user-1", "title": "t", "body": "b"})

        assert response.status_code == result[0]
        assert response.json() == result[1]

    def test_invalid_body(self, client: TestClient, forwarder: AsyncMock) -> None:
        """Некорректное тело отдаётся в том же формате, что и ошибки отправки."""
        response = client.post("/functions/v1/send-notification", json={"title": "t", "body": "b"})

        assert response.status_code == 500
        assert list(response.json()) == ["error"]
        assert "user_id" in response.json()["error"]
        forwarder.send.assert_not_called()

    def test_malformed_json(self, client: TestClient, forwarder: AsyncMock) -> None:
        response = client.post(
            "/functions/v1/send-notification",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 500
        assert response.json()["error"]
        forwarder.send.assert_not_called()

    def test_non_string_data_forwarded(self, client: TestClient, forwarder: AsyncMock) -> None:
        forwarder.send.return_value = (200, {"success": True, "fcm_result": {}})

        response = client.post(
            "/functions/v1/send-notification",
            json={"user_id": "user-1", "title": "t", "body": "b", "data": {"n": 1, "flag": True}},
        )

        assert response.status_code == 200
        assert forwarder.send.call_args.args[0].data == {"n": 1, "flag": True}

    def test_forwarder_not_initialized_response(self) -> None:
        set_forwarder(None)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/functions/v1/send-notification", json={"user_id": "user-1", "title": "t", "body": "b"})

        assert response.status_code == 500
        assert response.json() == {"error": "PushForwarder не инициализирован"}

    def test_forwarder_not_initialized(self) -> None:
        set_forwarder(None)

        with pytest.raises(RuntimeError):
            get_forwarder()
