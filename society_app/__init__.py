# society_app/__init__.py
"""
Society App: заказы сервисов для жителей жилых комплексов
и пересылка push-уведомлений.
"""

__version__ = "1.0.0"
