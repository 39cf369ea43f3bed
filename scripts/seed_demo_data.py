#!/usr/bin/env python3
"""Seed a local database with a demo company, sites, assets and templates.

Usage:
    uv run python -m scripts.seed_demo_data
"""

import asyncio
import logging
from datetime import UTC, datetime

from dateutil.relativedelta import relativedelta

from src.core import db_client
from src.core.db_client import close_connection, init_db


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

COMPANY_ID = 1


async def seed() -> None:
    """Insert demo rows covering every frequency class."""
    await init_db()
    try:
        kitchen = await db_client.create_record(
            collection="sites", data={"company_id": COMPANY_ID, "name": "Central Kitchen", "status": "active"}
        )
        await db_client.create_record(
            collection="sites", data={"company_id": COMPANY_ID, "name": "Old Depot", "status": "inactive"}
        )

        long_ago = (datetime.now(UTC).date() - relativedelta(months=8)).isoformat()
        await db_client.create_record(
            collection="assets",
            data={
                "company_id": COMPANY_ID,
                "site_id": kitchen["id"],
                "name": "Walk-in Fridge",
                "type": "refrigeration",
                "last_maintenance_date": long_ago,
                "maintenance_required": True,
            },
        )

        templates = [
            {
                "name": "Fridge temperature check",
                "frequency": "daily",
                "dayparts": ["before_open", "during_service"],
                "daypart_times": {"before_open": "07:00", "during_service": "12:00,15:00"},
                "is_critical": True,
                "evidence_types": ["temperature"],
            },
            {
                "name": "Opening checklist",
                "frequency": "daily",
                "recurrence_pattern": {"default_checklist_items": ["Lights on", "Tills counted"]},
                "evidence_types": ["yes_no_checklist"],
            },
            {"name": "Deep clean", "frequency": "weekly", "recurrence_pattern": {"weeks": [1, 4]}},
            {"name": "Pest control review", "frequency": "monthly", "recurrence_pattern": {"date_of_month": 1}},
            {"name": "Refrigeration service", "frequency": "triggered", "asset_type": "refrigeration"},
        ]
        for template in templates:
            record = await db_client.create_record(
                collection="task_templates", data={"company_id": COMPANY_ID, "is_active": True, **template}
            )
            logger.info(f"Created template {record['id']}: {record['name']}")
    finally:
        await close_connection()


if __name__ == "__main__":
    asyncio.run(seed())
