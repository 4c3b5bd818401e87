"""Periodic field-mapping refresh on an APScheduler interval job."""

import logging
from datetime import datetime, timezone

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jira_gateway.sync import IntegrationSync, SyncStatus


logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "refresh_field_mapping"


async def refresh_field_mapping(integration: IntegrationSync) -> None:
    """Scheduled sync; a failure is logged and retried at the next interval."""
    state = await integration.sync()
    if state.status == SyncStatus.FAILED:
        logger.error("Scheduled Jira field mapping refresh failed; retrying next interval")


def setup_scheduler(
    scheduler: AsyncIOScheduler, integration: IntegrationSync, interval_minutes: int
) -> None:
    """Register the refresh job, first run immediately (install / first sync)."""

    def _job_listener(event: JobExecutionEvent) -> None:
        logger.error(f"Scheduled job {event.job_id} raised: {event.exception}")

    scheduler.add_listener(_job_listener, EVENT_JOB_ERROR)
    scheduler.add_job(
        refresh_field_mapping,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[integration],
        id=REFRESH_JOB_ID,
        name="Refresh Jira field mapping",
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(f"Scheduled Jira field mapping refresh every {interval_minutes} minute(s)")
