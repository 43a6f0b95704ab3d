"""Retention reaper background job - deletes stale sessions and their samples."""
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from miniprobe.config import get_settings
from miniprobe.database import AsyncSessionLocal
from miniprobe.services.session_service import SessionService


logger = logging.getLogger(__name__)


async def retention_reaper_job():
    """
    Delete sessions that left the liveness window more than the grace period ago.

    Samples of a deleted session are removed by cascade in the same statement.
    """
    settings = get_settings()
    max_idle = settings.LIVENESS_WINDOW_SECONDS + settings.REAPER_GRACE_SECONDS

    logger.debug("Starting retention reaper job...")
    start_time = datetime.now(timezone.utc)

    try:
        async with AsyncSessionLocal() as session:
            service = SessionService(session)
            reaped = await service.reap_stale_sessions(max_idle)

            if reaped > 0:
                duration = (datetime.now(timezone.utc) - start_time).total_seconds()
                logger.info(
                    "Retention reaper completed: %d sessions reaped in %.2fs",
                    reaped, duration
                )

    except Exception as e:
        logger.error("Retention reaper job failed: %s", e)


def schedule_retention_reaper_job(scheduler: AsyncIOScheduler):
    """Register the retention reaper job with the scheduler."""
    interval = get_settings().REAPER_INTERVAL_SECONDS

    scheduler.add_job(
        retention_reaper_job,
        'interval',
        seconds=interval,
        id='retention_reaper',
        name='Retention Reaper',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info("Scheduled retention reaper job to run every %d seconds", interval)
