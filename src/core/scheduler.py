"""In-process scheduler for the task generation job."""

import logging
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import constants
from src.core.scheduler_tracker import retry_job_with_backoff
from src.services.generation_service import run_generation


logger = logging.getLogger(__name__)

GENERATION_JOB_NAME = "generate_daily_tasks"

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")


async def generate_daily_tasks_job() -> dict[str, Any]:
    """Run task generation once and return the response summary.

    Unit-level failures are in the summary's ``errors``; they do not fail the job.
    """
    log = await run_generation()
    if log.errors:
        logger.warning(
            "Task generation finished with errors",
            extra={"run_date": log.run_date, "errors": len(log.errors)},
        )
    return log.to_response()


def start_scheduler() -> None:
    """Start the scheduler and register the generation job.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    scheduler.add_job(
        retry_job_with_backoff,
        args=[generate_daily_tasks_job, GENERATION_JOB_NAME],
        trigger=CronTrigger(hour=constants.TASK_GENERATION_HOUR, minute=0, timezone="UTC"),
        id=GENERATION_JOB_NAME,
        name="Generate Recurring Task Instances",
        replace_existing=True,
    )
    logger.info(f"Scheduled task generation job: daily at {constants.TASK_GENERATION_HOUR}:00 UTC")

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    if not scheduler.running:
        return
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
