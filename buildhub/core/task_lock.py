"""
Task Lock Management

Cache-backed locks that keep a Celery task from running twice at once for
the same key (e.g. two artifact downloads for one build).
"""

import logging

from django.core.cache import cache

logger = logging.getLogger(__name__)

# Default timeout: 10 minutes (600 seconds)
DEFAULT_TASK_TIMEOUT = 600
LOCK_KEY_PREFIX = "buildhub_task_lock"


def _lock_key(lock_name: str) -> str:
    return f"{LOCK_KEY_PREFIX}:{lock_name}"


def acquire_task_lock(
    lock_name: str,
    timeout: int = DEFAULT_TASK_TIMEOUT
) -> bool:
    """
    Acquire task lock.

    Args:
        lock_name: Lock name (e.g., 'download_ci_artifact_<build_id>')
        timeout: Lock timeout in seconds (default: 600)

    Returns:
        True if lock acquired successfully, False if already locked
    """
    try:
        acquired = cache.add(_lock_key(lock_name), "locked", timeout=timeout)

        if acquired:
            logger.info(f"Acquired task lock: {lock_name}")
        else:
            logger.warning(f"Task lock already exists: {lock_name}")

        return acquired

    except Exception as exc:
        logger.error(f"Failed to acquire task lock {lock_name}: {exc}")
        return False


def release_task_lock(lock_name: str) -> bool:
    """
    Release task lock.

    Args:
        lock_name: Lock name to release

    Returns:
        True if lock released successfully
    """
    try:
        cache.delete(_lock_key(lock_name))
        logger.info(f"Released task lock: {lock_name}")
        return True

    except Exception as exc:
        logger.error(f"Failed to release task lock {lock_name}: {exc}")
        return False


def _lock_param_value(args, kwargs, lock_param):
    value = kwargs.get(lock_param)
    if value is None and args:
        # Skip the task instance for @shared_task(bind=True)
        if hasattr(args[0], 'request'):
            value = args[1] if len(args) > 1 else None
        else:
            value = args[0]
    return value


def prevent_duplicate_task(
    lock_name: str,
    timeout: int = DEFAULT_TASK_TIMEOUT,
    lock_param: str = None
):
    """
    Decorator to prevent duplicate task execution.

    Args:
        lock_name: Base lock name for the task
        timeout: Lock timeout in seconds
        lock_param: Argument whose value scopes the lock; the lock name
            becomes {lock_name}_{value}. Without it all calls share one lock.

    Examples:
        @shared_task(name='builds.tasks.download_ci_artifact')
        @prevent_duplicate_task(
            "download_ci_artifact", lock_param="build_id"
        )
        def download_ci_artifact(build_id, run_id=None):
            pass
    """
    def decorator(func):
        def wrapper(*args, **kwargs):
            task_lock_name = lock_name

            if lock_param:
                value = _lock_param_value(args, kwargs, lock_param)
                if value is not None:
                    task_lock_name = f"{lock_name}_{value}"
                else:
                    logger.warning(
                        f"Could not extract {lock_param} from task "
                        f"arguments, using base lock name: {lock_name}"
                    )

            if not acquire_task_lock(task_lock_name, timeout):
                logger.warning(
                    f"Task {task_lock_name} is already running, skipping"
                )
                return {
                    'success': False,
                    'status': 'skipped',
                    'reason': 'task_already_running',
                    'error': f'Task {task_lock_name} is already running'
                }

            try:
                return func(*args, **kwargs)
            finally:
                release_task_lock(task_lock_name)

        wrapper.__name__ = func.__name__
        wrapper.__module__ = func.__module__
        wrapper.__doc__ = func.__doc__

        return wrapper
    return decorator
