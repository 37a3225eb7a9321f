"""
Watchdog for APK builds stuck waiting on CI.

A build dispatched to CI sits at the CI progress mark until the workflow
calls back. If the callback never arrives the watchdog resyncs the build
from the CI API. It runs after build-list polls and on a beat schedule.

Concurrent sweeps coordinate through BuildRecord.syncing_since: a sweep
claims a build with a conditional update and only the winner syncs it.
A claim left behind by a transient error expires after
BUILD_SYNC_LOCK_TIMEOUT, which is what schedules the retry.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from django.core.cache import cache
from django.db.models import Q
from django.utils import timezone

from ..conf import (
    get_completed_cache_ttl,
    get_poll_sweep_interval,
    get_sync_lock_timeout,
    get_sync_stuck_seconds,
)
from ..constants import (
    APK_EXTENSION,
    CI_WAITING_PROGRESS,
    BuildStatus,
    Platform,
)
from ..exceptions import CIRequestError
from ..models import BuildRecord
from .ci_sync import sync_build_with_ci
from .github import (
    get_recommended_interval,
    get_seconds_until_reset,
    should_throttle,
)

logger = logging.getLogger(__name__)

COMPLETED_CACHE_KEY = "builds:ci_sync:done:{build_id}"
POLL_SWEEP_CACHE_KEY = "builds:watchdog:poll:{user_id}"
MAX_BUILDS_PER_SWEEP = 20


def _completed_key(build_id: str) -> str:
    return COMPLETED_CACHE_KEY.format(build_id=build_id)


def mark_recently_synced(build_id: str) -> None:
    cache.set(_completed_key(build_id), True, get_completed_cache_ttl())


def was_recently_synced(build_id: str) -> bool:
    return bool(cache.get(_completed_key(build_id)))


def request_user_sweep(user_id: int) -> bool:
    """
    Debounce poll-triggered sweeps per user. The gap grows while the
    GitHub API budget is running low.

    Returns:
        True if the caller should queue a sweep now
    """
    interval = get_recommended_interval(get_poll_sweep_interval())
    return cache.add(
        POLL_SWEEP_CACHE_KEY.format(user_id=user_id), True, interval
    )


def claim_sync_lock(build_id: str, now=None) -> bool:
    """
    Claim a build for syncing. A claim older than the lock timeout counts
    as abandoned and can be taken over.

    Returns:
        True if this caller now holds the claim
    """
    now = now or timezone.now()
    stale_before = now - timedelta(seconds=get_sync_lock_timeout())
    claimed = BuildRecord.objects.filter(pk=build_id).filter(
        Q(syncing_since__isnull=True) | Q(syncing_since__lt=stale_before)
    ).update(syncing_since=now)
    return bool(claimed)


def release_sync_lock(build_id: str) -> None:
    BuildRecord.objects.filter(pk=build_id).update(syncing_since=None)


def find_stuck_builds(user_id: Optional[int] = None, now=None):
    """
    APK builds waiting on CI longer than the stuck threshold, with a known
    run id and no APK stored yet.
    """
    now = now or timezone.now()
    threshold = now - timedelta(seconds=get_sync_stuck_seconds())
    builds = BuildRecord.objects.filter(
        platform=Platform.ANDROID_APK,
        status=BuildStatus.PROCESSING,
        progress=CI_WAITING_PROGRESS,
        updated_at__lt=threshold,
        github_run_id__isnull=False,
    ).exclude(
        github_run_id=""
    ).exclude(
        output_file_path__endswith=APK_EXTENSION
    )
    if user_id is not None:
        builds = builds.filter(user_id=user_id)
    return builds.order_by("updated_at")


def sync_stuck_build(build: BuildRecord) -> str:
    """
    Resync one stuck build under the claim protocol.

    Returns:
        One of: completed, failed, in_progress, error, skipped
    """
    if was_recently_synced(build.id):
        return "skipped"
    if not claim_sync_lock(build.id):
        return "skipped"

    try:
        result = sync_build_with_ci(build)
    except CIRequestError as e:
        # Claim stays held until stale so the next sweep retries
        logger.warning(f"[watchdog] transient error build={build.id}: {e}")
        return "error"
    except Exception as e:
        logger.exception(f"[watchdog] sync crashed build={build.id}: {e}")
        return "error"

    status = result.get("status")
    if status in BuildStatus.get_terminal_statuses():
        mark_recently_synced(build.id)
        release_sync_lock(build.id)
        logger.info(f"[watchdog] build={build.id} resolved status={status}")
        return status

    release_sync_lock(build.id)
    return "in_progress"


def auto_sync_stuck_builds(user_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Sweep stuck APK builds, optionally for one user.

    Skipped entirely while the GitHub API budget is mostly used.

    Returns:
        Summary counts per outcome
    """
    if should_throttle():
        retry_after = get_seconds_until_reset()
        logger.warning(
            f"[watchdog] GitHub rate limit high, sweep skipped "
            f"reset_in={retry_after}s"
        )
        return {"success": True, "status": "skipped",
                "reason": "rate_limited", "retry_after": retry_after}

    summary = {
        "success": True,
        "checked": 0,
        "completed": 0,
        "failed": 0,
        "in_progress": 0,
        "error": 0,
        "skipped": 0,
    }
    for build in find_stuck_builds(user_id)[:MAX_BUILDS_PER_SWEEP]:
        summary["checked"] += 1
        outcome = sync_stuck_build(build)
        summary[outcome] += 1

    if summary["checked"]:
        logger.info(
            f"[watchdog] sweep user={user_id} checked={summary['checked']} "
            f"completed={summary['completed']} failed={summary['failed']} "
            f"error={summary['error']}"
        )
    return summary
