"""
Celery tasks for build processing, CI artifact retrieval and cleanup.

Task bodies are the error boundary of the pipeline: anything a build
raises is turned into a failed record (with its quota refund) here and
never escapes to the worker.
"""
import logging
from typing import List, Optional

from celery import shared_task
from celery.exceptions import SoftTimeLimitExceeded

from core.task_lock import prevent_duplicate_task

from .constants import BuildErrorType
from .exceptions import BuildError, CIRequestError
from .services.ci_sync import cleanup_intermediate, publish_from_callback
from .services.expiry import purge_build_files_now
from .services.expiry import purge_expired_builds as purge_expired
from .services.orchestrator import fail_build, process_build as run_build
from .services.orchestrator import run_apk_pipeline
from .services.watchdog import auto_sync_stuck_builds

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = BuildErrorType.MESSAGES[BuildErrorType.TIMEOUT]


def _failure_message(exc) -> str:
    if isinstance(exc, SoftTimeLimitExceeded):
        return TIMEOUT_MESSAGE
    return str(exc) or BuildErrorType.MESSAGES[BuildErrorType.UNKNOWN]


@shared_task(name='builds.tasks.process_build')
def process_build(
    build_id: str,
    icon_url: Optional[str] = None,
    icon_base64: Optional[str] = None,
):
    """
    Package one platform build in-process.

    Args:
        build_id: BuildRecord id
        icon_url: Remote icon to fetch when the record has no icon_path
        icon_base64: Inline icon data, used last

    Returns:
        Dictionary with the processing result
    """
    logger.info(f"Task process_build: starting build={build_id}")
    try:
        return run_build(build_id, icon_url=icon_url, icon_base64=icon_base64)
    except (BuildError, SoftTimeLimitExceeded) as e:
        message = _failure_message(e)
        logger.warning(f"Task process_build: build={build_id} failed: {message}")
    except Exception as e:
        message = _failure_message(e)
        logger.exception(
            f"Task process_build: unexpected error build={build_id}: {e}"
        )
    fail_build(build_id, message)
    return {'success': False, 'build_id': build_id, 'error': message}


@shared_task(name='builds.tasks.process_apk_build')
def process_apk_build(
    build_id: str,
    icon_url: Optional[str] = None,
    icon_base64: Optional[str] = None,
):
    """
    Generate the Android source for an APK build and dispatch CI.
    """
    logger.info(f"Task process_apk_build: starting build={build_id}")
    try:
        return run_apk_pipeline(
            build_id, icon_url=icon_url, icon_base64=icon_base64
        )
    except (BuildError, SoftTimeLimitExceeded) as e:
        message = _failure_message(e)
        logger.warning(
            f"Task process_apk_build: build={build_id} failed: {message}"
        )
    except Exception as e:
        message = _failure_message(e)
        logger.exception(
            f"Task process_apk_build: unexpected error build={build_id}: {e}"
        )
    fail_build(build_id, message)
    cleanup_intermediate(build_id)
    return {'success': False, 'build_id': build_id, 'error': message}


@shared_task(name='builds.tasks.download_ci_artifact')
@prevent_duplicate_task(
    "download_ci_artifact", lock_param="build_id", timeout=900
)
def download_ci_artifact(build_id: str, run_id: Optional[str] = None):
    """
    Fetch and publish the APK of a finished CI run.

    Single-flight per build: a second delivery while one download runs is
    skipped. Transient CI and storage errors leave the build waiting for
    the watchdog.
    """
    try:
        return publish_from_callback(build_id, run_id)
    except (CIRequestError, OSError) as e:
        logger.warning(
            f"Task download_ci_artifact: transient error build={build_id}: "
            f"{e}"
        )
        return {'success': False, 'build_id': build_id, 'error': str(e)}
    except Exception as e:
        logger.exception(
            f"Task download_ci_artifact: unexpected error build={build_id}: "
            f"{e}"
        )
        fail_build(build_id, _failure_message(e))
        cleanup_intermediate(build_id)
        return {'success': False, 'build_id': build_id, 'error': str(e)}


@shared_task(name='builds.tasks.auto_sync_builds')
def auto_sync_builds(user_id: Optional[int] = None):
    """
    Resync APK builds stuck waiting on CI.

    Args:
        user_id: Restrict the sweep to one user's builds. None sweeps all.
    """
    return auto_sync_stuck_builds(user_id=user_id)


@shared_task(name='builds.tasks.purge_build_files')
def purge_build_files(build_ids: List[str]):
    """
    Delete stored files of builds found expired on read.
    """
    cleaned = purge_build_files_now(build_ids)
    logger.info(
        f"Task purge_build_files: cleaned={cleaned} "
        f"requested={len(build_ids)}"
    )
    return {'success': True, 'cleaned': cleaned}


@shared_task(name='builds.tasks.purge_expired_builds')
def purge_expired_builds():
    """
    Daily removal of builds past their retention window.
    """
    return purge_expired()
