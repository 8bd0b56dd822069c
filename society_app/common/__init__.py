# society_app/common/__init__.py
"""
Общие утилиты, константы и логгер.
"""

from society_app.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from society_app.common.constants import TypeMsg

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
]
