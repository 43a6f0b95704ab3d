"""APScheduler instance that drives the store's background jobs."""
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from miniprobe.config import get_settings


logger = logging.getLogger(__name__)

# Process-wide scheduler, created lazily
scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Return the process scheduler, creating it on first use."""
    global scheduler
    if scheduler is not None:
        return scheduler

    settings = get_settings()
    scheduler = AsyncIOScheduler(
        jobstores={'default': MemoryJobStore()},
        executors={'default': AsyncIOExecutor()},
        job_defaults={
            'coalesce': True,
            'max_instances': 1,
            # Runs more than one interval late are skipped
            'misfire_grace_time': settings.REAPER_INTERVAL_SECONDS,
        },
        timezone='UTC',
    )
    logger.info("Scheduler created (UTC)")
    return scheduler


async def start_scheduler():
    """Register the store's jobs and start the scheduler."""
    from miniprobe.tasks.retention_reaper import schedule_retention_reaper_job

    sched = get_scheduler()
    if sched.running:
        logger.warning("Scheduler is already running")
        return

    schedule_retention_reaper_job(sched)
    sched.start()

    for job in list_jobs():
        logger.info("  - Job: %s, next run: %s", job["id"], job["next_run_time"])


async def stop_scheduler():
    """Shut the scheduler down and forget it so a later start builds a fresh one."""
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")
    scheduler = None


def list_jobs() -> list[dict]:
    """Describe the registered jobs."""
    jobs = []
    for job in get_scheduler().get_jobs():
        next_run_time = getattr(job, "next_run_time", None)  # Unset until the scheduler starts
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(next_run_time) if next_run_time else None,
            "trigger": str(job.trigger),
        })
    return jobs
