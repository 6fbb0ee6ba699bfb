"""定时任务."""

from lares.scheduler.tasks import create_scheduler, runloop, shutdown_scheduler

__all__ = [
    "create_scheduler",
    "runloop",
    "shutdown_scheduler",
]
