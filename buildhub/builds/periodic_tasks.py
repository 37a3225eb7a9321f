"""
Register this app's periodic tasks with the scheduler registry.

Called by the main project's register_periodic_tasks management command.
"""
from celery.schedules import crontab

from core.periodic_registry import TASK_REGISTRY

from .conf import get_sync_stuck_seconds


def register_periodic_tasks():
    TASK_REGISTRY.add(
        name="builds_purge_expired_daily",
        task="builds.tasks.purge_expired_builds",
        schedule=crontab(hour=3, minute=0),
        args=(),
        kwargs={},
        enabled=True,
    )
    TASK_REGISTRY.add(
        name="builds_ci_watchdog",
        task="builds.tasks.auto_sync_builds",
        schedule=get_sync_stuck_seconds(),
        args=(),
        kwargs={},
        enabled=True,
    )
