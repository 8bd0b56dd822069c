# society_app/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Имя корневого логгера приложения
ROOT_LOGGER_NAME = "society_app"

# HTTP заголовки
REQUEST_ID_HEADER = "X-Request-ID"
ACTOR_ID_HEADER = "X-User-Id"
ACTOR_ROLE_HEADER = "X-User-Role"

# Префиксы ключей кэша в Redis
ORDER_CACHE_PREFIX = "order"
WORKFLOW_CACHE_PREFIX = "workflow"
