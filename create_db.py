# create_db.py
"""
Создаёт базу данных (если её нет) и применяет migrations/init.sql.
"""

import asyncio

import asyncpg

from society_app.config import settings
from society_app.infra.database import close_db, init_db


async def create_db() -> None:
    cfg = settings.database

    # Подключаемся к служебной БД postgres, чтобы создать новую
    sys_conn = await asyncpg.connect(
        user=cfg.DB_USER,
        password=cfg.DB_PASSWORD,
        host=cfg.DB_HOST,
        port=cfg.DB_PORT,
        database="postgres",
    )
    try:
        exists = await sys_conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", cfg.DB_NAME)
        if not exists:
            print(f"Creating database {cfg.DB_NAME}...")
            await sys_conn.execute(f'CREATE DATABASE "{cfg.DB_NAME}"')
            print("Database created.")
        else:
            print(f"Database {cfg.DB_NAME} already exists.")
    finally:
        await sys_conn.close()

    await init_db(apply_schema=True)
    await close_db()
    print("Schema applied.")


if __name__ == "__main__":
    asyncio.run(create_db())
