# society_app/core/catalog/__init__.py
"""
Каталог услуг и исполнителей.
"""

from society_app.core.catalog.repository import CatalogRepository

__all__ = ["CatalogRepository"]
