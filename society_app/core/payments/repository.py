# society_app/core/payments/repository.py
"""
Репозиторий платежей.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator

from asyncpg import Connection

from society_app.infra.database import DatabaseManager, record_to_dict
from society_app.shared.models.enums import PaymentMethod, PaymentStatus
from society_app.shared.models.payment import Payment, PaymentCallbackDTO


PAYMENT_COLUMNS = """
    payment_id, order_id, amount, payment_method, payment_status,
    razorpay_order_id, razorpay_payment_id, razorpay_signature,
    paid_at, created_at, updated_at
"""


class PaymentRepository:
    """Репозиторий платежей (один платёж на заказ)."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        async with self._db.transaction() as conn:
            yield conn

    async def get_by_order(self, order_id: str, conn: Connection | None = None, for_update: bool = False) -> Payment | None:
        query = f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE order_id = $1"
        if for_update:
            query += " FOR UPDATE"
        row = await (conn.fetchrow(query, order_id) if conn else self._db.fetchrow(query, order_id))
        return Payment.model_validate(record_to_dict(row)) if row else None

    async def create_if_absent(
        self,
        conn: Connection,
        order_id: str,
        amount: Decimal,
        method: PaymentMethod,
    ) -> tuple[Payment, bool]:
        """
        Создаёт PENDING платёж, если для заказа его ещё нет.

        Returns:
            (платёж, создан ли он этим вызовом)
        """
        row = await conn.fetchrow(
            f"""
            INSERT INTO payments (order_id, amount, payment_method, payment_status)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (order_id) DO NOTHING
            RETURNING {PAYMENT_COLUMNS}
            """,
            order_id,
            amount,
            method.value,
            PaymentStatus.PENDING.value,
        )
        if row is not None:
            return Payment.model_validate(record_to_dict(row)), True

        existing = await self.get_by_order(order_id, conn)
        if existing is None:
            raise RuntimeError(f"Платёж заказа {order_id} не создан и не найден")
        return existing, False

    async def compare_and_set_status(
        self,
        conn: Connection,
        payment_id: int,
        expected: PaymentStatus,
        callback: PaymentCallbackDTO,
        paid_at: datetime | None,
    ) -> Payment | None:
        """Обновляет статус и идентификаторы шлюза, если статус всё ещё expected."""
        row = await conn.fetchrow(
            f"""
            UPDATE payments
            SET payment_status = $3,
                payment_method = COALESCE($4, payment_method),
                razorpay_order_id = COALESCE($5, razorpay_order_id),
                razorpay_payment_id = COALESCE($6, razorpay_payment_id),
                razorpay_signature = COALESCE($7, razorpay_signature),
                paid_at = COALESCE($8, paid_at),
                updated_at = NOW()
            WHERE payment_id = $1 AND payment_status = $2
            RETURNING {PAYMENT_COLUMNS}
            """,
            payment_id,
            expected.value,
            callback.payment_status.value,
            callback.payment_method.value if callback.payment_method else None,
            callback.razorpay_order_id,
            callback.razorpay_payment_id,
            callback.razorpay_signature,
            paid_at,
        )
        return Payment.model_validate(record_to_dict(row)) if row else None
