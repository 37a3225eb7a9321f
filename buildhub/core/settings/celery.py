"""
Celery settings: broker, result backend, beat scheduler and task limits.
"""
import os

# Redis carries the build queue; results are kept in the Django database.
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL",
                              "redis://localhost:6379/0")

CELERY_RESULT_BACKEND = 'django-db'

# Periodic sweeps (expiry purge, CI auto-sync) are stored by
# django_celery_beat and registered with `manage.py register_periodic_tasks`.
CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'

CELERY_TIMEZONE = os.getenv('CELERY_TIMEZONE', 'Asia/Shanghai')
CELERY_ENABLE_UTC = True

# Build payloads are plain ids and dicts; never accept pickle.
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'

CELERY_BROKER_TRANSPORT_OPTIONS = {
    'visibility_timeout': 3600,
    'fanout_prefix': True,
    'fanout_patterns': True,
}

# Hard/soft ceilings for any task. Platform packaging tasks get a tighter
# per-platform soft limit at dispatch time (see builds.conf).
CELERY_TASK_TIME_LIMIT = 900
CELERY_TASK_SOFT_TIME_LIMIT = 600

# Keep task results for 3 days
CELERY_RESULT_EXPIRES = 259200

# A build task lost with its worker is redelivered instead of leaving the
# record stuck in processing.
CELERY_TASK_ACKS_LATE = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True

# Packaging and CI downloads are long I/O-bound tasks; fetch one at a time.
CELERY_WORKER_PREFETCH_MULTIPLIER = int(
    os.getenv('CELERY_WORKER_PREFETCH_MULTIPLIER', 1)
)

# Periodic tasks are registered via: python manage.py register_periodic_tasks
CELERY_BEAT_SCHEDULE = {}
