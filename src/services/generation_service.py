"""Recurring task generation run: calendar passes, triggered scan, expiry sweep."""

import logging
from datetime import UTC, date, datetime

from src.core.errors import ErrorCategory, format_run_error
from src.core.logging import log_with_context, span
from src.domain.template import FrequencyClass, TaskTemplate
from src.models.service_models import PassResult, RunLog
from src.services import expansion_service, instance_service, site_service, template_service, triggered_service


logger = logging.getLogger(__name__)

CALENDAR_PASSES = (FrequencyClass.DAILY, FrequencyClass.WEEKLY, FrequencyClass.MONTHLY)


async def process_template(*, template: TaskTemplate, today: date, now: datetime) -> PassResult:
    """Instantiate one template across its sites.

    Site resolution failures skip the template; a write failure at one site is
    recorded and the remaining sites still run.
    """
    result = PassResult()

    try:
        template_service.ensure_scoped(template)
        if not template.rule.is_due(today):
            return result
        candidates = expansion_service.expand(template)
    except Exception as e:
        logger.error("Template invalid", extra={"template_id": template.id, "error": str(e)})
        result.errors.append(format_run_error(ErrorCategory.TEMPLATE_INVALID, e, template=template.id))
        return result

    try:
        sites = await site_service.resolve_sites(template)
    except Exception as e:
        logger.error("Site resolution failed", extra={"template_id": template.id, "error": str(e)})
        result.errors.append(format_run_error(ErrorCategory.SITE_RESOLUTION, e, template=template.id))
        return result

    for site in sites:
        try:
            outcome = await instance_service.instantiate(
                template=template, site=site, today=today, candidates=candidates, now=now
            )
        except Exception as e:
            logger.error(
                "Instantiation failed",
                extra={"template_id": template.id, "site_id": site.id, "error": str(e)},
            )
            result.errors.append(format_run_error(ErrorCategory.INSTANTIATION, e, template=template.id, site=site.id))
            continue
        result.created += len(outcome.created)
        result.skipped += outcome.skipped

    return result


async def run_calendar_pass(*, frequency: FrequencyClass, today: date, now: datetime) -> PassResult:
    """Load and process every active template of one calendar frequency class."""
    result = PassResult()

    with span("generation.calendar_pass", frequency=str(frequency), run_date=today.isoformat()):
        try:
            templates, invalid = await template_service.load_active_templates(frequency)
        except Exception as e:
            logger.error("Template load failed", extra={"frequency": str(frequency), "error": str(e)})
            result.errors.append(format_run_error(ErrorCategory.TEMPLATE_LOAD, e, frequency=frequency))
            return result

        for bad in invalid:
            result.errors.append(format_run_error(ErrorCategory.TEMPLATE_INVALID, bad, template=bad.template_id))

        for template in templates:
            result.merge(await process_template(template=template, today=today, now=now))

    logger.info(
        "Calendar pass complete",
        extra={
            "frequency": str(frequency),
            "created": result.created,
            "skipped": result.skipped,
            "errors": len(result.errors),
        },
    )
    return result


async def run_generation(*, today: date | None = None, now: datetime | None = None) -> RunLog:
    """Run every generation pass once and return the run log.

    Daily, weekly and monthly passes run in sequence, then the triggered scan,
    then the expiry sweep. Failures are recorded on the log; nothing raises.

    Args:
        today: Run date (defaults to the current UTC date)
        now: Generation timestamp (defaults to the current UTC time)
    """
    now = now or datetime.now(UTC)
    today = today or now.date()
    log = RunLog(run_date=today.isoformat(), timestamp=now)

    logger.info("Task generation run starting", extra={"run_date": log.run_date})

    with span("generation.run", run_date=log.run_date):
        for frequency in CALENDAR_PASSES:
            log.record_pass(frequency, await run_calendar_pass(frequency=frequency, today=today, now=now))

        log.record_pass(FrequencyClass.TRIGGERED, await triggered_service.scan_triggered(today=today, now=now))

        try:
            log.expired_tasks_deleted = await instance_service.sweep_expired(now)
        except Exception as e:
            logger.error("Expiry sweep failed", extra={"error": str(e)})
            log.errors.append(format_run_error(ErrorCategory.SWEEP, e))

    log_with_context(
        logger,
        "info",
        "Task generation run complete",
        run_date=log.run_date,
        total_created=log.total_tasks_created,
        deleted=log.expired_tasks_deleted,
        errors=len(log.errors),
    )
    return log
