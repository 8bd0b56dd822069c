# society_app/core/users/__init__.py
"""
Пользователи и жители.
"""

from society_app.core.users.repository import UserRepository

__all__ = ["UserRepository"]
