"""Task instance creation with read-before-write dedup, and the expiry sweep."""

import logging
from datetime import date, datetime
from typing import Any, NamedTuple

from src.core import db_client
from src.core.db_client import sanitize_param, to_iso
from src.core.logging import span
from src.domain.instance import (
    Candidate,
    TaskInstance,
    TaskPriority,
    TaskStatus,
    asset_dedup_key,
    dedup_key,
)
from src.domain.site import Asset, Site
from src.domain.template import TaskTemplate
from src.services.expansion_service import resolve_dayparts, resolve_daypart_times


logger = logging.getLogger(__name__)

INSTANCES = "task_instances"
DEDUP_COLUMNS = ["template_id", "site_id", "due_date", "dedup_key"]


class InstantiationResult(NamedTuple):
    """Outcome of instantiating one template at one site."""

    created: list[TaskInstance]
    skipped: int


def build_task_data(template: TaskTemplate) -> dict[str, Any] | None:
    """Pre-populate checklist answers from the template's default checklist items."""
    items = template.checklist_items
    if not items:
        return None
    if "yes_no_checklist" in template.evidence_types:
        return {"yesNoChecklistItems": [{"text": text, "answer": None} for text in items]}
    return {"checklistItems": items}


def _priority_for(template: TaskTemplate) -> TaskPriority:
    return TaskPriority.CRITICAL if template.is_critical else TaskPriority.MEDIUM


def build_instance(
    *,
    template: TaskTemplate,
    site: Site,
    today: date,
    candidate: Candidate,
    now: datetime,
    all_dayparts: list[str],
) -> TaskInstance:
    """Build the row for one surviving candidate."""
    rule = template.rule
    metadata: dict[str, Any] = {
        "frequency": str(template.frequency),
        "run_date": today.isoformat(),
        "template_name": template.name,
        "dayparts": all_dayparts,
        "daypart": candidate.daypart,
        "due_time": candidate.due_time,
    }
    if rule.fans_out_times:
        metadata["daypart_times"] = resolve_daypart_times(template, candidate.daypart)

    return TaskInstance(
        template_id=template.id,
        company_id=site.company_id,
        site_id=site.id,
        due_date=today.isoformat(),
        due_time=candidate.due_time,
        daypart=candidate.daypart,
        dedup_key=dedup_key(candidate.daypart, candidate.due_time, include_time=rule.fans_out_times),
        status=TaskStatus.PENDING,
        priority=_priority_for(template),
        assigned_to_role=template.assigned_to_role,
        assigned_to_user_id=template.assigned_to_user_id,
        generated_at=now,
        expires_at=now + rule.expiry_window if rule.expiry_window else None,
        metadata=metadata,
        task_data=build_task_data(template),
    )


async def existing_dedup_keys(*, template: TaskTemplate, site: Site, today: date) -> set[str]:
    """Dedup keys of instances already created today for this template and site."""
    include_time = template.rule.fans_out_times
    fields = ["daypart", "due_time"] if include_time else ["daypart"]
    records = await db_client.get_full_list(
        collection=INSTANCES,
        filter_query=(
            f'template_id = "{sanitize_param(template.id)}" && site_id = "{sanitize_param(site.id)}" '
            f'&& due_date = "{today.isoformat()}"'
        ),
        fields=fields,
    )
    return {dedup_key(r["daypart"], r.get("due_time"), include_time=include_time) for r in records}


async def _insert(instances: list[TaskInstance]) -> list[TaskInstance]:
    """Insert in one transaction; rows already present under the dedup index are dropped."""
    inserted = await db_client.create_records(
        collection=INSTANCES,
        records=[instance.to_record() for instance in instances],
        skip_conflicts_on=DEDUP_COLUMNS,
    )
    by_key = {(row["site_id"], row["dedup_key"]): row["id"] for row in inserted}
    created = []
    for instance in instances:
        row_id = by_key.get((instance.site_id, instance.dedup_key))
        if row_id is not None:
            created.append(instance.model_copy(update={"id": row_id}))
    return created


async def instantiate(
    *,
    template: TaskTemplate,
    site: Site,
    today: date,
    candidates: list[Candidate],
    now: datetime,
) -> InstantiationResult:
    """Create the candidates not yet instantiated today for this template and site.

    Store failures propagate to the caller, which records them against the
    template and site.
    """
    existing = await existing_dedup_keys(template=template, site=site, today=today)
    include_time = template.rule.fans_out_times
    all_dayparts = resolve_dayparts(template)

    fresh = [c for c in candidates if dedup_key(c.daypart, c.due_time, include_time=include_time) not in existing]
    skipped = len(candidates) - len(fresh)
    if not fresh:
        return InstantiationResult(created=[], skipped=skipped)

    instances = [
        build_instance(template=template, site=site, today=today, candidate=c, now=now, all_dayparts=all_dayparts)
        for c in fresh
    ]
    created = await _insert(instances)

    raced = len(instances) - len(created)
    if raced:
        logger.info(
            "Concurrent run already created instances, skipping",
            extra={"template_id": template.id, "site_id": site.id, "count": raced},
        )

    logger.debug(
        "Instantiated template",
        extra={"template_id": template.id, "site_id": site.id, "created": len(created), "skipped": skipped + raced},
    )
    return InstantiationResult(created=created, skipped=skipped + raced)


async def triggered_instance_exists(*, template: TaskTemplate, asset: Asset, today: date) -> bool:
    record = await db_client.get_first_record(
        collection=INSTANCES,
        filter_query=(
            f'template_id = "{sanitize_param(template.id)}" && asset_id = "{sanitize_param(asset.id)}" '
            f'&& due_date = "{today.isoformat()}"'
        ),
    )
    return record is not None


async def create_triggered_instance(
    *,
    template: TaskTemplate,
    asset: Asset,
    today: date,
    now: datetime,
) -> TaskInstance | None:
    """Create the single maintenance task for an overdue asset.

    Returns None when a concurrent run created it first.
    """
    daypart = resolve_dayparts(template)[0]
    instance = TaskInstance(
        template_id=template.id,
        company_id=asset.company_id,
        site_id=asset.site_id,
        asset_id=asset.id,
        due_date=today.isoformat(),
        due_time=template.time_of_day,
        daypart=daypart,
        dedup_key=asset_dedup_key(asset.id),
        status=TaskStatus.PENDING,
        priority=TaskPriority.HIGH,
        assigned_to_role=template.assigned_to_role,
        assigned_to_user_id=template.assigned_to_user_id,
        generated_at=now,
        expires_at=None,
        metadata={
            "frequency": str(template.frequency),
            "run_date": today.isoformat(),
            "template_name": template.name,
            "asset_id": asset.id,
            "asset_name": asset.name,
            "asset_type": asset.type,
            "last_maintenance_date": asset.last_maintenance_date,
            "daypart": daypart,
            "due_time": template.time_of_day,
        },
        task_data=build_task_data(template),
    )
    created = await _insert([instance])
    return created[0] if created else None


async def sweep_expired(now: datetime) -> int:
    """Delete pending instances whose expiry is at or before ``now``.

    Instances without an expiry are never swept.
    """
    with span("instance_service.sweep_expired"):
        deleted = await db_client.delete_records(
            collection=INSTANCES,
            filter_query=f'status = "{TaskStatus.PENDING}" && expires_at <= "{to_iso(now)}"',
        )
    logger.info("Swept expired instances", extra={"deleted": deleted, "now": to_iso(now)})
    return deleted
