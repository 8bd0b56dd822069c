# society_app/services/__init__.py
"""
HTTP-сервисы приложения.

Сервисы:
- orders_api: заказы, статусы, позиции, расчёт цены, платежи, каталог

Общая PostgreSQL, Redis для кэша чтения, RabbitMQ для событий.
"""

__all__: list[str] = []
