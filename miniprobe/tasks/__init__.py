"""Background tasks and job scheduler."""
from miniprobe.tasks.scheduler import (
    get_scheduler,
    start_scheduler,
    stop_scheduler,
    list_jobs,
)
from miniprobe.tasks.retention_reaper import retention_reaper_job

__all__ = [
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "list_jobs",
    "retention_reaper_job",
]
