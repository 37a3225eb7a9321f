"""
Registry for periodic tasks.

Each app declares its beat entries in periodic_tasks.register_periodic_tasks();
apply_registry() writes them to django_celery_beat. Safe to run on every
deploy: existing rows keep their schedule and enabled flag, only the task
path and arguments are refreshed from code.
"""
import json
import logging

logger = logging.getLogger(__name__)


def _crontab_row(schedule):
    from django_celery_beat.models import CrontabSchedule

    obj, created = CrontabSchedule.from_schedule(schedule)
    if created:
        obj.save()
    return obj


def _interval_row(seconds):
    from django_celery_beat.models import IntervalSchedule

    obj, _ = IntervalSchedule.objects.get_or_create(
        every=max(int(seconds), 1),
        period=IntervalSchedule.SECONDS,
    )
    return obj


class TaskRegistry:
    """
    In-memory registry of periodic task definitions keyed by beat name.

    schedule is a celery.schedules.crontab or a number of seconds.
    """

    def __init__(self):
        self._entries = {}

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, name):
        return name in self._entries

    def get(self, name):
        return self._entries.get(name)

    def add(self, name, task, schedule, args=(), kwargs=None, enabled=True):
        self._entries[name] = {
            "task": task,
            "schedule": schedule,
            "args": list(args),
            "kwargs": dict(kwargs or {}),
            "enabled": enabled,
        }

    def _apply_one(self, name, entry):
        from django_celery_beat.models import PeriodicTask, PeriodicTasks

        schedule = entry["schedule"]
        defaults = {
            "task": entry["task"],
            "args": json.dumps(entry["args"]),
            "kwargs": json.dumps(entry["kwargs"]),
            "enabled": entry["enabled"],
        }
        if isinstance(schedule, (int, float)):
            defaults["interval"] = _interval_row(schedule)
        else:
            defaults["crontab"] = _crontab_row(schedule)

        obj, created = PeriodicTask.objects.get_or_create(
            name=name, defaults=defaults
        )
        if not created:
            obj.task = defaults["task"]
            obj.args = defaults["args"]
            obj.kwargs = defaults["kwargs"]
            obj.save(update_fields=["task", "args", "kwargs"])
        PeriodicTasks.update_changed()

    def apply(self):
        """Write all registered entries to django_celery_beat."""
        for name, entry in self._entries.items():
            try:
                self._apply_one(name, entry)
                logger.debug(f"Registered periodic task: {name}")
            except Exception as e:
                logger.exception(
                    f"Failed to register periodic task {name}: {e}"
                )


TASK_REGISTRY = TaskRegistry()


def apply_registry():
    """Apply the global TASK_REGISTRY to django_celery_beat."""
    TASK_REGISTRY.apply()
