"""
Retention handling for build artifacts.

Expiry is enforced on read: list/detail responses hide files of expired
builds immediately and schedule the actual deletion in the background.
A daily beat task removes whatever reads never touched.
"""
import logging
from datetime import timedelta
from typing import Iterable, List

from django.db import transaction
from django.utils import timezone

from ..models import BuildRecord
from .storage import delete_build_files, delete_file

logger = logging.getLogger(__name__)


def compute_expires_at(retention_days: int, now=None):
    """
    Return the absolute expiry for a build created now.
    """
    now = now or timezone.now()
    return now + timedelta(days=max(1, int(retention_days)))


def split_expired(builds: Iterable[BuildRecord]) -> List[str]:
    """
    Return ids of builds whose retention window has passed.
    """
    now = timezone.now()
    return [
        b.id for b in builds
        if b.expires_at and b.expires_at <= now
        and (b.output_file_path or b.icon_path)
    ]


def schedule_expired_cleanup(build_ids: List[str]) -> None:
    """
    Queue file deletion for expired builds without blocking the caller.
    """
    if not build_ids:
        return
    from ..tasks import purge_build_files

    transaction.on_commit(
        lambda: purge_build_files.delay(list(build_ids))
    )
    logger.info(
        f"[expiry] scheduled cleanup for {len(build_ids)} expired build(s)"
    )


def apply_expiry(builds: Iterable[BuildRecord]) -> List[BuildRecord]:
    """
    Hide files of expired builds in a read and queue their deletion.

    Expired records come back with output_file_path, icon_path and
    download_url cleared and `expired` set; the stored objects are removed
    in the background.
    """
    builds = list(builds)
    now = timezone.now()
    expired_ids = split_expired(builds)
    for build in builds:
        build.expired = bool(build.expires_at and build.expires_at <= now)
        if build.expired:
            build.output_file_path = None
            build.icon_path = None
            build.download_url = None
    schedule_expired_cleanup(expired_ids)
    return builds


def purge_build_files_now(build_ids: List[str]) -> int:
    """
    Delete storage objects of expired builds and null their file pointers.
    Records that are not expired are left untouched.

    Returns:
        Number of builds cleaned
    """
    now = timezone.now()
    cleaned = 0
    for build in BuildRecord.objects.filter(
        id__in=build_ids, expires_at__lte=now
    ):
        try:
            delete_file(build.output_file_path)
            delete_file(build.icon_path)
            delete_build_files(build.id)
        except Exception as e:
            logger.warning(
                f"[expiry] file cleanup failed build={build.id}: {e}"
            )
            continue
        BuildRecord.objects.filter(pk=build.pk).update(
            output_file_path=None,
            icon_path=None,
            download_url=None,
        )
        cleaned += 1
    return cleaned


def purge_expired_builds(now=None) -> dict:
    """
    Delete files and records of every build past its expiry.

    Returns:
        {'success': True, 'deleted': int, 'file_errors': int}
    """
    now = now or timezone.now()
    deleted = 0
    file_errors = 0
    expired = BuildRecord.objects.filter(expires_at__lte=now).only(
        "id", "output_file_path", "icon_path"
    )
    for build in expired.iterator():
        try:
            delete_file(build.output_file_path)
            delete_file(build.icon_path)
            delete_build_files(build.id)
        except Exception as e:
            file_errors += 1
            logger.warning(
                f"[expiry] file cleanup failed build={build.id}: {e}"
            )
        BuildRecord.objects.filter(pk=build.pk).delete()
        deleted += 1

    logger.info(
        f"[expiry] purge finished deleted={deleted} file_errors={file_errors}"
    )
    return {"success": True, "deleted": deleted, "file_errors": file_errors}


def extend_expiry_for_user(user_id: int, retention_days: int) -> int:
    """
    Push expiry of a user's live builds out to the new retention window,
    measured from each build's creation. Expiry never moves backwards.

    Returns:
        Number of builds updated
    """
    now = timezone.now()
    updated = 0
    live = BuildRecord.objects.filter(user_id=user_id, expires_at__gt=now)
    for build in live.only("id", "created_at", "expires_at"):
        new_expiry = compute_expires_at(retention_days, build.created_at)
        if new_expiry > build.expires_at:
            BuildRecord.objects.filter(pk=build.pk).update(
                expires_at=new_expiry
            )
            updated += 1
    if updated:
        logger.info(
            f"[expiry] extended {updated} build(s) user={user_id} "
            f"retention={retention_days}d"
        )
    return updated
