# society_app/core/orders/models.py
"""
Вспомогательные модели сервиса заказов.
"""

from __future__ import annotations

from dataclasses import dataclass

from society_app.shared.models.enums import UserType


@dataclass(frozen=True)
class Actor:
    """Кто выполняет действие: пользователь и его роль."""
    user_id: str
    role: UserType
