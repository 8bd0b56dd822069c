# society_app/core/orders/repository.py
"""
Репозиторий заказов в PostgreSQL.
Изменяющие методы принимают соединение открытой транзакции;
ошибки БД пробрасываются вызывающему.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncGenerator

from asyncpg import Connection

from society_app.infra.database import DatabaseManager, record_to_dict
from society_app.shared.models.enums import OrderStatus
from society_app.shared.models.order import Order, OrderItem, OrderServiceStatus


ORDER_COLUMNS = """
    order_id, order_number, resident_id, vendor_id, society_id, status,
    has_multiple_services, estimated_price, final_price, pickup_datetime,
    expected_delivery_date, actual_delivery_date, pickup_address,
    delivery_preference, created_at, updated_at
"""

ITEM_COLUMNS = "item_id, order_id, service_id, item_name, quantity, unit_price, total_price, created_at"

SERVICE_STATUS_COLUMNS = """
    status_id, order_id, service_id, item_count, total_amount, status,
    expected_delivery_date, actual_delivery_date, created_at, updated_at
"""


@dataclass
class OrderFilters:
    """Фильтры списка заказов."""
    status: OrderStatus | None = None
    vendor_id: str | None = None
    resident_id: str | None = None
    society_id: int | None = None

    def to_sql(self) -> tuple[str, list[Any]]:
        """WHERE-условие и параметры."""
        clauses: list[str] = []
        args: list[Any] = []
        for column, value in (
            ("status", self.status.value if self.status else None),
            ("vendor_id", self.vendor_id),
            ("resident_id", self.resident_id),
            ("society_id", self.society_id),
        ):
            if value is not None:
                args.append(value)
                clauses.append(f"{column} = ${len(args)}")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, args


class OrderRepository:
    """Репозиторий заказов, позиций и статусов услуг."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """Транзакция, внутри которой выполняются все изменения заказа."""
        async with self._db.transaction() as conn:
            yield conn

    # =========================================================================
    # СОЗДАНИЕ
    # =========================================================================

    async def insert_order(self, conn: Connection, data: dict[str, Any]) -> Order:
        """Вставляет заказ. data содержит все поля Order, кроме временных меток."""
        row = await conn.fetchrow(
            f"""
            INSERT INTO orders (
                order_id, order_number, resident_id, vendor_id, society_id, status,
                has_multiple_services, estimated_price, pickup_datetime,
                expected_delivery_date, pickup_address, delivery_preference
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
            RETURNING {ORDER_COLUMNS}
            """,
            data["order_id"],
            data["order_number"],
            data["resident_id"],
            data["vendor_id"],
            data["society_id"],
            OrderStatus(data["status"]).value,
            data["has_multiple_services"],
            data["estimated_price"],
            data["pickup_datetime"],
            data["expected_delivery_date"],
            data["pickup_address"],
            str(data["delivery_preference"]),
        )
        return Order.model_validate(record_to_dict(row))

    async def insert_items(self, conn: Connection, order_id: str, items: list[dict[str, Any]]) -> list[OrderItem]:
        """Вставляет позиции заказа."""
        result: list[OrderItem] = []
        for item in items:
            row = await conn.fetchrow(
                f"""
                INSERT INTO order_items (order_id, service_id, item_name, quantity, unit_price, total_price)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {ITEM_COLUMNS}
                """,
                order_id,
                item["service_id"],
                item["item_name"],
                item["quantity"],
                item["unit_price"],
                item["unit_price"] * item["quantity"],
            )
            result.append(OrderItem.model_validate(record_to_dict(row)))
        return result

    async def insert_service_statuses(
        self,
        conn: Connection,
        order_id: str,
        rows: list[dict[str, Any]],
    ) -> list[OrderServiceStatus]:
        """Создаёт строки статусов услуг (для PARTIAL)."""
        result: list[OrderServiceStatus] = []
        for data in rows:
            row = await conn.fetchrow(
                f"""
                INSERT INTO order_service_status (
                    order_id, service_id, item_count, total_amount, status, expected_delivery_date
                )
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {SERVICE_STATUS_COLUMNS}
                """,
                order_id,
                data["service_id"],
                data["item_count"],
                data["total_amount"],
                OrderStatus.BOOKING_CREATED.value,
                data["expected_delivery_date"],
            )
            result.append(OrderServiceStatus.model_validate(record_to_dict(row)))
        return result

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get(self, order_id: str) -> Order | None:
        """Заказ без блокировки."""
        row = await self._db.fetchrow(f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id = $1", order_id)
        return Order.model_validate(record_to_dict(row)) if row else None

    async def get_for_update(self, conn: Connection, order_id: str) -> Order | None:
        """Перечитывает заказ с блокировкой строки до конца транзакции."""
        row = await conn.fetchrow(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id = $1 FOR UPDATE",
            order_id,
        )
        return Order.model_validate(record_to_dict(row)) if row else None

    async def get_items(self, order_id: str, conn: Connection | None = None) -> list[OrderItem]:
        query = f"SELECT {ITEM_COLUMNS} FROM order_items WHERE order_id = $1 ORDER BY item_id"
        rows = await (conn.fetch(query, order_id) if conn else self._db.fetch(query, order_id))
        return [OrderItem.model_validate(record_to_dict(r)) for r in rows]

    async def get_service_statuses(
        self,
        order_id: str,
        conn: Connection | None = None,
        for_update: bool = False,
    ) -> list[OrderServiceStatus]:
        query = f"SELECT {SERVICE_STATUS_COLUMNS} FROM order_service_status WHERE order_id = $1 ORDER BY service_id"
        if for_update:
            query += " FOR UPDATE"
        rows = await (conn.fetch(query, order_id) if conn else self._db.fetch(query, order_id))
        return [OrderServiceStatus.model_validate(record_to_dict(r)) for r in rows]

    async def list_orders(self, filters: OrderFilters, limit: int, offset: int) -> tuple[list[Order], int]:
        """Страница заказов (новые первыми) и общее количество."""
        where, args = filters.to_sql()
        total = await self._db.fetchval(f"SELECT COUNT(*) FROM orders {where}", *args)
        rows = await self._db.fetch(
            f"""
            SELECT {ORDER_COLUMNS} FROM orders {where}
            ORDER BY created_at DESC, order_id
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
            """,
            *args,
            limit,
            offset,
        )
        return [Order.model_validate(record_to_dict(r)) for r in rows], int(total or 0)

    # =========================================================================
    # ИЗМЕНЕНИЕ (compare-and-swap по статусу)
    # =========================================================================

    async def compare_and_set_status(
        self,
        conn: Connection,
        order_id: str,
        expected: OrderStatus,
        new: OrderStatus,
        *,
        actual_delivery_date: datetime | None = None,
        final_price: Decimal | None = None,
    ) -> Order | None:
        """
        Меняет статус заказа, только если он всё ещё равен expected.
        None означает, что статус успел измениться.
        """
        row = await conn.fetchrow(
            f"""
            UPDATE orders
            SET status = $3,
                actual_delivery_date = COALESCE(actual_delivery_date, $4),
                final_price = COALESCE(final_price, $5),
                updated_at = NOW()
            WHERE order_id = $1 AND status = $2
            RETURNING {ORDER_COLUMNS}
            """,
            order_id,
            expected.value,
            new.value,
            actual_delivery_date,
            final_price,
        )
        return Order.model_validate(record_to_dict(row)) if row else None

    async def compare_and_set_service_status(
        self,
        conn: Connection,
        order_id: str,
        service_id: int,
        expected: OrderStatus,
        new: OrderStatus,
        *,
        actual_delivery_date: datetime | None = None,
    ) -> OrderServiceStatus | None:
        """Меняет статус услуги заказа по тому же принципу compare-and-swap."""
        row = await conn.fetchrow(
            f"""
            UPDATE order_service_status
            SET status = $4,
                actual_delivery_date = COALESCE(actual_delivery_date, $5),
                updated_at = NOW()
            WHERE order_id = $1 AND service_id = $2 AND status = $3
            RETURNING {SERVICE_STATUS_COLUMNS}
            """,
            order_id,
            service_id,
            expected.value,
            new.value,
            actual_delivery_date,
        )
        return OrderServiceStatus.model_validate(record_to_dict(row)) if row else None

    async def update_item_quantity(self, conn: Connection, item: OrderItem) -> OrderItem:
        """Сохраняет новое количество и сумму позиции."""
        row = await conn.fetchrow(
            f"""
            UPDATE order_items
            SET quantity = $2, total_price = $3
            WHERE item_id = $1
            RETURNING {ITEM_COLUMNS}
            """,
            item.item_id,
            item.quantity,
            item.total_price,
        )
        return OrderItem.model_validate(record_to_dict(row))

    async def update_service_totals(
        self,
        conn: Connection,
        order_id: str,
        service_id: int,
        item_count: int,
        total_amount: Decimal,
    ) -> None:
        await conn.execute(
            """
            UPDATE order_service_status
            SET item_count = $3, total_amount = $4, updated_at = NOW()
            WHERE order_id = $1 AND service_id = $2
            """,
            order_id,
            service_id,
            item_count,
            total_amount,
        )

    async def update_estimated_price(self, conn: Connection, order_id: str, estimated_price: Decimal) -> Order:
        row = await conn.fetchrow(
            f"""
            UPDATE orders SET estimated_price = $2, updated_at = NOW()
            WHERE order_id = $1
            RETURNING {ORDER_COLUMNS}
            """,
            order_id,
            estimated_price,
        )
        return Order.model_validate(record_to_dict(row))
