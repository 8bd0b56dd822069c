# create_dev_user.py
"""
Заполняет БД разработчика: житель, одобренный исполнитель-прачечная,
две услуги с прайс-листом и шаблоном процесса.
Повторный запуск ничего не дублирует.
"""

import asyncio
from decimal import Decimal
import os
import sys

# Add project root to path
sys.path.append(os.getcwd())

from society_app.infra.database import close_db, init_db

DEV_SOCIETY_ID = 1


async def main():
    db = await init_db(apply_schema=True)
    print("Connected to DB")

    async with db.transaction() as conn:
        resident_user_id = await conn.fetchval(
            """
            INSERT INTO users (phone, user_type, full_name, is_verified)
            VALUES ('+910000000001', 'RESIDENT', 'Dev Resident', true)
            ON CONFLICT (phone) DO UPDATE SET updated_at = NOW()
            RETURNING user_id
            """
        )
        vendor_user_id = await conn.fetchval(
            """
            INSERT INTO users (phone, user_type, full_name, is_verified)
            VALUES ('+910000000002', 'VENDOR', 'Dev Vendor', true)
            ON CONFLICT (phone) DO UPDATE SET updated_at = NOW()
            RETURNING user_id
            """
        )

        resident_id = await conn.fetchval("SELECT resident_id FROM residents WHERE user_id = $1", resident_user_id)
        if resident_id is None:
            resident_id = await conn.fetchval(
                """
                INSERT INTO residents (user_id, society_id, flat_number, tower)
                VALUES ($1, $2, '101', 'A')
                RETURNING resident_id
                """,
                resident_user_id,
                DEV_SOCIETY_ID,
            )

        category_id = await conn.fetchval(
            """
            INSERT INTO parent_categories (category_key, category_name, is_live)
            VALUES ('laundry', 'Laundry', true)
            ON CONFLICT (category_key) DO UPDATE SET is_live = true
            RETURNING category_id
            """
        )

        service_ids = {}
        for key, name, hours in (("wash_fold", "Wash & Fold", 24), ("dry_clean", "Dry Clean", 72)):
            service_ids[key] = await conn.fetchval(
                """
                INSERT INTO service_categories (parent_category_id, service_key, service_name, estimated_duration_hours)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (service_key) DO UPDATE SET estimated_duration_hours = EXCLUDED.estimated_duration_hours
                RETURNING service_id
                """,
                category_id,
                key,
                name,
                hours,
            )

        vendor_id = await conn.fetchval("SELECT vendor_id FROM vendors WHERE user_id = $1", vendor_user_id)
        if vendor_id is None:
            vendor_id = await conn.fetchval(
                """
                INSERT INTO vendors (user_id, business_name, owner_name, phone, category_id,
                                     society_id, approval_status, is_available)
                VALUES ($1, 'Dev Laundry', 'Dev Vendor', '+910000000002', $2, $3, 'APPROVED', true)
                RETURNING vendor_id
                """,
                vendor_user_id,
                category_id,
                DEV_SOCIETY_ID,
            )

            for service_id in service_ids.values():
                await conn.execute(
                    "INSERT INTO vendor_services (vendor_id, service_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
                    vendor_id,
                    service_id,
                )
            for service_key, item_name, price in (
                ("wash_fold", "Shirt", "30.00"),
                ("wash_fold", "Trouser", "40.00"),
                ("dry_clean", "Saree", "250.00"),
                ("dry_clean", "Blazer", "300.00"),
            ):
                await conn.execute(
                    """
                    INSERT INTO vendor_rate_cards (vendor_id, service_id, item_name, price)
                    VALUES ($1, $2, $3, $4)
                    """,
                    vendor_id,
                    service_ids[service_key],
                    item_name,
                    Decimal(price),
                )

        template_id = await conn.fetchval(
            "SELECT template_id FROM service_workflow_templates WHERE service_id = $1",
            service_ids["wash_fold"],
        )
        if template_id is None:
            template_id = await conn.fetchval(
                """
                INSERT INTO service_workflow_templates (service_id, template_name)
                VALUES ($1, 'Standard wash & fold')
                RETURNING template_id
                """,
                service_ids["wash_fold"],
            )
            for order, (step_name, hours) in enumerate((("Wash", 8), ("Dry", 8), ("Fold & pack", 4)), start=1):
                await conn.execute(
                    """
                    INSERT INTO workflow_steps (template_id, step_name, step_order, estimated_duration_hours)
                    VALUES ($1, $2, $3, $4)
                    """,
                    template_id,
                    step_name,
                    order,
                    hours,
                )

    print(f"Resident user {resident_user_id} (resident {resident_id}), society {DEV_SOCIETY_ID}")
    print(f"Vendor user {vendor_user_id} (vendor {vendor_id}), category {category_id}")
    print(f"Services: {service_ids}")

    await close_db()


if __name__ == "__main__":
    asyncio.run(main())
