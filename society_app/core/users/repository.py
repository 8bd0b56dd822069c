# society_app/core/users/repository.py
"""
Репозиторий пользователей и жителей.
"""

from __future__ import annotations

from society_app.infra.database import DatabaseManager, record_to_dict
from society_app.shared.models.user import Resident, User


class UserRepository:
    """Чтение пользователей, жителей и связей с учётными записями."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_user(self, user_id: str) -> User | None:
        row = await self._db.fetchrow(
            """
            SELECT user_id, phone, user_type, email, full_name, is_verified,
                   fcm_token, created_at, updated_at
            FROM users WHERE user_id = $1
            """,
            user_id,
        )
        return User.model_validate(record_to_dict(row)) if row else None

    async def get_fcm_token(self, user_id: str) -> str | None:
        """Токен устройства пользователя (None, если пользователя или токена нет)."""
        return await self._db.fetchval("SELECT fcm_token FROM users WHERE user_id = $1", user_id)

    async def get_active_resident_by_user(self, user_id: str, society_id: int) -> Resident | None:
        """Активная запись жителя пользователя в обществе."""
        row = await self._db.fetchrow(
            """
            SELECT resident_id, user_id, society_id, flat_number, tower, is_active, created_at
            FROM residents
            WHERE user_id = $1 AND society_id = $2 AND is_active
            ORDER BY created_at
            LIMIT 1
            """,
            user_id,
            society_id,
        )
        return Resident.model_validate(record_to_dict(row)) if row else None

    async def get_resident_user_id(self, resident_id: str) -> str | None:
        value = await self._db.fetchval("SELECT user_id FROM residents WHERE resident_id = $1", resident_id)
        return str(value) if value is not None else None

    async def get_vendor_user_id(self, vendor_id: str) -> str | None:
        value = await self._db.fetchval("SELECT user_id FROM vendors WHERE vendor_id = $1", vendor_id)
        return str(value) if value is not None else None
