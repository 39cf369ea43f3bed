"""Maintenance-triggered task scanning."""

import logging
from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from src.core import db_client
from src.core.config import constants
from src.core.errors import ErrorCategory, format_run_error
from src.core.logging import span
from src.domain.site import Asset
from src.domain.template import TaskTemplate
from src.models.service_models import PassResult
from src.services import instance_service, site_service, template_service


logger = logging.getLogger(__name__)


def maintenance_threshold(today: date) -> date:
    """Assets last serviced before this date are overdue."""
    return today - relativedelta(months=constants.MAINTENANCE_THRESHOLD_MONTHS)


async def list_overdue_assets(today: date) -> list[Asset]:
    records = await db_client.get_full_list(
        collection="assets",
        filter_query=(
            f'maintenance_required = "true" && last_maintenance_date < "{maintenance_threshold(today).isoformat()}"'
        ),
    )
    return [Asset.model_validate(record) for record in records]


async def scan_triggered(*, today: date, now: datetime) -> PassResult:
    """Create one maintenance task per overdue asset with a servicing template.

    Assets with no matching template, or whose site is inactive, are skipped
    without error. A failure on one asset is recorded and the scan moves on.
    """
    result = PassResult()

    with span("triggered_service.scan_triggered", run_date=today.isoformat()):
        try:
            assets = await list_overdue_assets(today)
            active_site_ids = {site.id for site in await site_service.list_active_sites()}
        except Exception as e:
            logger.error("Triggered scan query failed", extra={"error": str(e)})
            result.errors.append(format_run_error(ErrorCategory.TRIGGERED_SCAN, e))
            return result

        templates_by_type: dict[str, TaskTemplate | None] = {}

        for asset in assets:
            try:
                if asset.site_id not in active_site_ids:
                    logger.debug("Asset site inactive, skipping", extra={"asset_id": asset.id, "site_id": asset.site_id})
                    continue

                if asset.type not in templates_by_type:
                    templates_by_type[asset.type] = await template_service.find_triggered_template(asset.type)
                template = templates_by_type[asset.type]
                if template is None:
                    continue

                if await instance_service.triggered_instance_exists(template=template, asset=asset, today=today):
                    result.skipped += 1
                    continue

                instance = await instance_service.create_triggered_instance(
                    template=template, asset=asset, today=today, now=now
                )
                if instance is None:
                    result.skipped += 1
                    continue

                result.created += 1
                logger.info(
                    "Created maintenance task",
                    extra={"asset_id": asset.id, "template_id": template.id, "site_id": asset.site_id},
                )
            except Exception as e:
                logger.error("Triggered task failed", extra={"asset_id": asset.id, "error": str(e)})
                result.errors.append(
                    format_run_error(ErrorCategory.TRIGGERED_ASSET, e, asset=asset.id, site=asset.site_id)
                )

    return result
