# society_app/core/errors.py
"""
Иерархия ошибок бизнес-логики.
Каждая ошибка несёт стабильный код, HTTP-статус и сообщение;
API-слой превращает их в конверт ApiResponse.error.
"""

from __future__ import annotations

from pydantic import JsonValue


class ServiceError(Exception):
    """Базовая ошибка сервиса."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, JsonValue] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidTransitionError(ServiceError):
    """Нарушен порядок статусов."""

    code = "INVALID_TRANSITION"
    status_code = 409


class UnauthorizedError(ServiceError):
    """Роли актора не разрешён переход или действие."""

    code = "UNAUTHORIZED"
    status_code = 403


class ConflictError(ServiceError):
    """Статус изменился конкурентно с тех пор, как его прочитал вызывающий."""

    code = "CONFLICT"
    status_code = 409


class VendorNotEligibleError(ServiceError):
    """Исполнитель не может оказать услугу."""

    code = "VENDOR_NOT_ELIGIBLE"
    status_code = 422


class RateNotFoundError(ServiceError):
    """Для позиции нет активной строки прайс-листа."""

    code = "RATE_NOT_FOUND"
    status_code = 422


class NotFoundError(ServiceError):
    """Сущность не найдена."""

    code = "NOT_FOUND"
    status_code = 404


class ValidationFailedError(ServiceError):
    """Некорректный запрос (VALIDATION_ERROR, PRICE_MISMATCH, COUNT_CONFIRMATION_REQUIRED)."""

    code = "VALIDATION_ERROR"
    status_code = 400


__all__ = [
    "ServiceError",
    "InvalidTransitionError",
    "UnauthorizedError",
    "ConflictError",
    "VendorNotEligibleError",
    "RateNotFoundError",
    "NotFoundError",
    "ValidationFailedError",
]
