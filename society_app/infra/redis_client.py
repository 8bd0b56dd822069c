# society_app/infra/redis_client.py
"""
Клиент Redis для кэширования заказов и шаблонов процессов.
Поддерживает типизированные операции с Pydantic моделями.
"""

from __future__ import annotations

from typing import TypeVar, Type

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError

from society_app.common.logger import log_info, log_warning, log_error

T = TypeVar("T", bound=BaseModel)


class RedisClient:
    """
    Асинхронный клиент Redis (Singleton).
    Все ключи автоматически получают префикс namespace.
    """

    _instance: RedisClient | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, "_initialized", False):
            return
        self._initialized = True
        self._client: redis.Redis | None = None
        self._namespace = "society"

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def _make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        return f"{self._namespace}:{key}"

    async def connect(
        self,
        url: str,
        max_connections: int = 50,
        namespace: str | None = None,
    ) -> None:
        """
        Подключается к Redis и проверяет соединение командой PING.

        Args:
            url: URL Redis
            max_connections: Максимальное количество соединений
            namespace: Префикс ключей
        """
        if self._client is not None:
            return
        if namespace:
            self._namespace = namespace

        await log_info("Подключение к Redis...", logger_name="redis")
        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )
        await self._client.ping()
        await log_info("Подключение к Redis установлено", logger_name="redis")

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", logger_name="redis")

    # =========================================================================
    # БАЗОВЫЕ ОПЕРАЦИИ
    # =========================================================================

    async def get(self, key: str) -> str | None:
        """Получает значение по ключу."""
        return await self.client.get(self._make_key(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Устанавливает значение с необязательным TTL (секунды)."""
        return bool(await self.client.set(self._make_key(key), value, ex=ttl))

    async def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        """SET NX: возвращает True, если ключ был создан этим вызовом."""
        return bool(await self.client.set(self._make_key(key), value, ex=ttl, nx=True))

    async def delete(self, *keys: str) -> int:
        """Удаляет ключи."""
        if not keys:
            return 0
        return await self.client.delete(*(self._make_key(k) for k in keys))

    # =========================================================================
    # ТИПИЗИРОВАННЫЕ ОПЕРАЦИИ (PYDANTIC)
    # =========================================================================

    async def get_model(self, key: str, model_class: Type[T]) -> T | None:
        """
        Получает и десериализует Pydantic модель.
        Повреждённая запись удаляется и считается промахом кэша.
        """
        data = await self.get(key)
        if data is None:
            return None

        try:
            return model_class.model_validate_json(data)
        except ValidationError as e:
            await log_warning(
                f"Повреждённая запись кэша {key} ({model_class.__name__}): {e}",
                logger_name="redis",
            )
            await self.delete(key)
            return None

    async def set_model(self, key: str, model: BaseModel, ttl: int | None = None) -> bool:
        """Сериализует и сохраняет Pydantic модель."""
        return await self.set(key, model.model_dump_json(), ttl=ttl)

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    async def health_check(self) -> bool:
        """Проверяет здоровье подключения к Redis."""
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}", logger_name="redis")
            return False


def get_redis() -> RedisClient:
    """Возвращает глобальный экземпляр RedisClient."""
    return RedisClient()


async def init_redis() -> RedisClient:
    """Инициализирует подключение к Redis по настройкам."""
    from society_app.config import settings

    cfg = settings.redis
    client = get_redis()
    await client.connect(
        url=cfg.url,
        max_connections=cfg.REDIS_MAX_CONNECTIONS,
        namespace=cfg.REDIS_NAMESPACE,
    )
    await log_info(f"Redis подключён: {cfg.REDIS_HOST}:{cfg.REDIS_PORT}/{cfg.REDIS_DB}", logger_name="redis")
    return client


async def close_redis() -> None:
    """Закрывает подключение к Redis."""
    await get_redis().disconnect()
