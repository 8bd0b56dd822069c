# society_app/core/__init__.py
"""
Бизнес-логика: заказы, каталог, платежи, уведомления.
"""
