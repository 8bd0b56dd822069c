# society_app/shared/__init__.py
"""
Общий слой: модели, разделяемые сервисами.
"""
