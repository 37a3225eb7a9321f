"""
Register every installed app's periodic tasks with Celery Beat.

Run after migrate (e.g. in the container entrypoint). Each app exposing
periodic_tasks.register_periodic_tasks() adds its entries to TASK_REGISTRY,
which is then written to django_celery_beat.
"""
import importlib
import logging

from django.conf import settings
from django.core.management.base import BaseCommand

from core.periodic_registry import TASK_REGISTRY, apply_registry

logger = logging.getLogger(__name__)


def discover_periodic_tasks():
    """
    Clear the registry and collect entries from each app's periodic_tasks.
    """
    TASK_REGISTRY.clear()

    for app in settings.INSTALLED_APPS:
        try:
            module = importlib.import_module(f"{app}.periodic_tasks")
        except ModuleNotFoundError:
            continue

        register = getattr(module, "register_periodic_tasks", None)
        if register is None:
            continue
        try:
            register()
        except Exception as e:
            logger.exception(
                f"register_periodic_tasks failed for app {app}: {e}"
            )


class Command(BaseCommand):
    help = (
        "Collect apps' periodic_tasks.register_periodic_tasks() entries and "
        "write them to django_celery_beat (idempotent)."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List discovered tasks without writing them",
        )

    def handle(self, *args, **options):
        discover_periodic_tasks()
        count = len(TASK_REGISTRY)
        if options["dry_run"]:
            self.stdout.write(f"Discovered {count} periodic task(s).")
            return
        apply_registry()
        self.stdout.write(
            self.style.SUCCESS(
                f"Registered {count} periodic task(s) to django_celery_beat."
            )
        )
