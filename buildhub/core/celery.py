import logging
import os

from celery import Celery
from celery.signals import worker_shutting_down

# Configure logging for the application
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Point Celery at the Django settings package (core/settings/).
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")

# The application name matches the Django project package so task names
# resolve as '<app>.tasks.<name>'.
logger.debug("Creating Celery application instance with name: core")
app = Celery("core")

# Only settings prefixed with CELERY_ are read, see core/settings/celery.py.
logger.info("Loading Celery configuration from Django settings")
app.config_from_object("django.conf:settings", namespace="CELERY")

# Results go to django_celery_results; beat schedules to django_celery_beat.
app.conf.update(
    result_backend='django-db',
    beat_scheduler='django_celery_beat.schedulers:DatabaseScheduler'
)

# Picks up builds.tasks and any other app's tasks.py.
logger.info("Discovering tasks in registered Django applications")
app.autodiscover_tasks()


@worker_shutting_down.connect
def on_worker_shutting_down(sender=None, **kwargs):
    """
    Called when worker is shutting down.

    In-flight build tasks are acknowledged late, so anything interrupted
    here is redelivered to another worker.
    """
    logger.info(
        "Worker shutting down, unacknowledged build tasks will be "
        "redelivered"
    )
