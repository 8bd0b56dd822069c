# society_app/core/catalog/repository.py
"""
Чтение каталога: исполнители, предложения, прайс-листы, услуги и шаблоны процессов.
"""

from __future__ import annotations

from typing import Iterable

from society_app.infra.database import DatabaseManager, record_to_dict
from society_app.shared.models.catalog import ServiceCategory, VendorRateCard, VendorService
from society_app.shared.models.user import Vendor
from society_app.shared.models.workflow import ServiceWorkflow, ServiceWorkflowTemplate, WorkflowStep


class CatalogRepository:
    """Репозиторий каталога (только чтение)."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_vendor(self, vendor_id: str) -> Vendor | None:
        row = await self._db.fetchrow(
            """
            SELECT vendor_id, user_id, business_name, owner_name, phone, email,
                   category_id, society_id, approval_status, is_available,
                   rating, total_orders, created_at
            FROM vendors WHERE vendor_id = $1
            """,
            vendor_id,
        )
        return Vendor.model_validate(record_to_dict(row)) if row else None

    async def get_vendor_offerings(self, vendor_id: str) -> list[VendorService]:
        """Все строки предложений исполнителя (включая is_offered = false)."""
        rows = await self._db.fetch(
            """
            SELECT vendor_service_id, vendor_id, service_id, is_offered, created_at
            FROM vendor_services WHERE vendor_id = $1
            """,
            vendor_id,
        )
        return [VendorService.model_validate(record_to_dict(r)) for r in rows]

    async def get_rate_cards(self, vendor_id: str, service_ids: Iterable[int] | None = None) -> list[VendorRateCard]:
        """Активные строки прайс-листа исполнителя."""
        query = """
            SELECT rate_card_id, vendor_id, service_id, item_name, price, unit,
                   is_active, created_at, updated_at
            FROM vendor_rate_cards
            WHERE vendor_id = $1 AND is_active
        """
        args: list = [vendor_id]
        if service_ids is not None:
            query += " AND service_id = ANY($2::int[])"
            args.append(sorted(set(service_ids)))
        rows = await self._db.fetch(query + " ORDER BY rate_card_id", *args)
        return [VendorRateCard.model_validate(record_to_dict(r)) for r in rows]

    async def get_services(self, service_ids: Iterable[int]) -> list[ServiceCategory]:
        rows = await self._db.fetch(
            """
            SELECT service_id, parent_category_id, service_key, service_name,
                   service_description, estimated_duration_hours, created_at
            FROM service_categories WHERE service_id = ANY($1::int[])
            """,
            sorted(set(service_ids)),
        )
        return [ServiceCategory.model_validate(record_to_dict(r)) for r in rows]

    async def get_workflow(self, service_id: int) -> ServiceWorkflow | None:
        """Первый шаблон процесса услуги вместе с упорядоченными шагами."""
        template_row = await self._db.fetchrow(
            """
            SELECT template_id, service_id, template_name, created_at
            FROM service_workflow_templates
            WHERE service_id = $1
            ORDER BY template_id
            LIMIT 1
            """,
            service_id,
        )
        if template_row is None:
            return None

        template = ServiceWorkflowTemplate.model_validate(record_to_dict(template_row))
        step_rows = await self._db.fetch(
            """
            SELECT step_id, template_id, step_name, step_order, is_customer_facing,
                   estimated_duration_hours, created_at
            FROM workflow_steps WHERE template_id = $1
            ORDER BY step_order
            """,
            template.template_id,
        )
        return ServiceWorkflow(
            template=template,
            steps=[WorkflowStep.model_validate(record_to_dict(r)) for r in step_rows],
        )
