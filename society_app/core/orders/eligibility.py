# society_app/core/orders/eligibility.py
"""
Проверка, может ли исполнитель оказать услугу.
"""

from __future__ import annotations

from typing import Iterable

from society_app.core.errors import VendorNotEligibleError
from society_app.shared.models.api import EligibilityResult
from society_app.shared.models.catalog import VendorService
from society_app.shared.models.enums import ApprovalStatus
from society_app.shared.models.user import Vendor


def ineligibility_reason(vendor: Vendor, service_id: int, offerings: Iterable[VendorService]) -> str | None:
    """Причина, по которой исполнитель не может оказать услугу, или None."""
    if vendor.approval_status != ApprovalStatus.APPROVED:
        return f"исполнитель не одобрен (статус {vendor.approval_status})"
    if not vendor.is_available:
        return "исполнитель недоступен"
    offered = any(
        o.vendor_id == vendor.vendor_id and o.service_id == service_id and o.is_offered
        for o in offerings
    )
    if not offered:
        return f"исполнитель не оказывает услугу {service_id}"
    return None


def is_eligible(vendor: Vendor, service_id: int, offerings: Iterable[VendorService]) -> bool:
    """
    True, если есть строка предложения (vendor, service) с is_offered,
    исполнитель одобрен и доступен.
    """
    return ineligibility_reason(vendor, service_id, offerings) is None


def check_eligibility(vendor: Vendor, service_id: int, offerings: Iterable[VendorService]) -> EligibilityResult:
    reason = ineligibility_reason(vendor, service_id, offerings)
    return EligibilityResult(
        vendor_id=vendor.vendor_id,
        service_id=service_id,
        eligible=reason is None,
        reason=reason,
    )


def ensure_eligible(
    vendor: Vendor,
    service_ids: Iterable[int],
    offerings: Iterable[VendorService],
    *,
    society_id: int | None = None,
    category_id: int | None = None,
) -> None:
    """
    Проверяет исполнителя для всех услуг заказа.

    Raises:
        VendorNotEligibleError: с указанием первой неподходящей услуги или причины
    """
    if society_id is not None and vendor.society_id != society_id:
        raise VendorNotEligibleError(
            f"Исполнитель {vendor.vendor_id} не обслуживает общество {society_id}",
            details={"vendor_id": vendor.vendor_id, "society_id": society_id},
        )
    if category_id is not None and vendor.category_id != category_id:
        raise VendorNotEligibleError(
            f"Исполнитель {vendor.vendor_id} не работает в категории {category_id}",
            details={"vendor_id": vendor.vendor_id, "category_id": category_id},
        )

    offerings = list(offerings)
    for service_id in dict.fromkeys(service_ids):
        reason = ineligibility_reason(vendor, service_id, offerings)
        if reason is not None:
            raise VendorNotEligibleError(
                f"Услуга {service_id} недоступна у исполнителя {vendor.vendor_id}: {reason}",
                details={"vendor_id": vendor.vendor_id, "service_id": service_id, "reason": reason},
            )
