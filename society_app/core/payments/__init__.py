# society_app/core/payments/__init__.py
"""
Платежи по заказам.
"""

from society_app.core.payments.repository import PaymentRepository
from society_app.core.payments.service import PAYMENT_TRANSITIONS, PaymentService

__all__ = ["PaymentRepository", "PaymentService", "PAYMENT_TRANSITIONS"]
