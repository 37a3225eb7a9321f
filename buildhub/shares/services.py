"""
Share link service: create, resolve, list and revoke build shares.
"""
import logging
import math
from datetime import timedelta
from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.crypto import constant_time_compare, get_random_string

from builds.constants import BuildStatus
from builds.models import BuildRecord
from builds.services.storage import get_temp_download_url
from quota.conf import get_plan_share_days, plan_supports_qrcode_share
from quota.services import get_or_create_wallet

from .conf import get_share_page_base_url
from .constants import (
    DEFAULT_EXPIRES_IN_DAYS,
    MAX_EXPIRES_IN_DAYS,
    MIN_EXPIRES_IN_DAYS,
    SECRET_CHARS,
    SECRET_LENGTH,
    SHARE_CODE_CHARS,
    SHARE_CODE_LENGTH,
    ShareType,
)
from .models import BuildShare

logger = logging.getLogger(__name__)

CODE_ATTEMPTS = 5


def _error(error: str, status_code: int, **extra) -> Dict[str, Any]:
    return {"success": False, "error": error, "status_code": status_code,
            **extra}


def generate_share_code() -> str:
    return get_random_string(SHARE_CODE_LENGTH, SHARE_CODE_CHARS)


def generate_secret() -> str:
    return get_random_string(SECRET_LENGTH, SECRET_CHARS)


def get_share_url(share_code: str) -> str:
    return f"{get_share_page_base_url()}/share/{share_code}"


def build_remaining_days(build: BuildRecord, now=None) -> int:
    """
    Whole days left before the build expires, rounded up.
    """
    now = now or timezone.now()
    seconds = (build.expires_at - now).total_seconds()
    return math.ceil(seconds / 86400)


def clamp_expires_in_days(value) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError):
        days = DEFAULT_EXPIRES_IN_DAYS
    return max(MIN_EXPIRES_IN_DAYS, min(MAX_EXPIRES_IN_DAYS, days))


def serialize_share(share: BuildShare) -> Dict[str, Any]:
    return {
        "id": share.id,
        "shareCode": share.share_code,
        "shareUrl": get_share_url(share.share_code),
        "shareType": share.share_type,
        "isPublic": share.is_public,
        "secret": share.secret or "",
        "expiresAt": share.expires_at.isoformat(),
        "expired": share.is_expired,
        "accessCount": share.access_count,
        "createdAt": share.created_at.isoformat(),
    }


def _insert_share(**fields) -> BuildShare:
    """
    Insert a share under a fresh code, retrying on code collisions.
    """
    for attempt in range(CODE_ATTEMPTS):
        try:
            with transaction.atomic():
                return BuildShare.objects.create(
                    share_code=generate_share_code(), **fields
                )
        except IntegrityError:
            logger.warning(f"[shares] share code collision attempt={attempt}")
    raise IntegrityError("Could not allocate a unique share code")


def create_share(
    user,
    build_id: str,
    expire_days: int,
    share_type: str = ShareType.LINK,
    make_public: bool = False,
    expires_in_days: int = DEFAULT_EXPIRES_IN_DAYS,
) -> Dict[str, Any]:
    """
    Create a share link for one of the user's completed builds.

    The share lifetime is the smallest of the requested days, the plan's
    share limit, the build's remaining retention and the clamped
    expires_in_days.

    Args:
        user: Requesting user, must own the build
        build_id: Build to share
        expire_days: Requested lifetime in days
        share_type: link or qrcode (Team plan only)
        make_public: Public shares need no secret
        expires_in_days: Link lifetime preference, clamped to 1-30

    Returns:
        {success, share, status_code} or {success: False, error, status_code}
    """
    if not build_id or not expire_days:
        return _error("Missing required parameters", 400)
    try:
        expire_days = int(expire_days)
    except (TypeError, ValueError):
        return _error("Invalid expire days", 400)
    if share_type not in ShareType.get_all_types():
        return _error("Invalid share type", 400)

    wallet = get_or_create_wallet(user.id)
    if wallet is None:
        return _error("Failed to load wallet", 503)
    max_share_days = get_plan_share_days(wallet.plan)
    if max_share_days == 0:
        return _error("Sharing not available for Free plan", 403)
    if share_type == ShareType.QRCODE and not plan_supports_qrcode_share(
        wallet.plan
    ):
        return _error("QR code sharing is only available for Team plan", 403)

    build = BuildRecord.objects.filter(pk=build_id).first()
    if build is None:
        return _error("Build not found", 404)
    if build.user_id != user.id:
        return _error("Access denied", 403)
    if build.status != BuildStatus.COMPLETED or not build.output_file_path:
        return _error("Build not completed or file not available", 400)

    now = timezone.now()
    remaining_days = build_remaining_days(build, now)
    if remaining_days <= 0:
        return _error("Build has expired", 400)

    valid_expires_in = clamp_expires_in_days(expires_in_days)
    actual_days = min(
        expire_days, max_share_days, remaining_days, valid_expires_in
    )
    if actual_days <= 0:
        return _error("Invalid expire days", 400)

    try:
        share = _insert_share(
            build=build,
            user=user,
            share_type=share_type,
            is_public=bool(make_public),
            secret=None if make_public else generate_secret(),
            expires_in_days=valid_expires_in,
            expires_at=now + timedelta(days=actual_days),
        )
    except IntegrityError as e:
        logger.error(f"[shares] insert failed build={build_id}: {e}")
        return _error("Failed to create share", 500)

    logger.info(
        f"[shares] created code={share.share_code} build={build_id} "
        f"user={user.id} days={actual_days}"
    )
    data = serialize_share(share)
    data.update(
        actualExpireDays=actual_days,
        maxShareDays=max_share_days,
        buildRemainingDays=remaining_days,
    )
    return {"success": True, "share": data, "status_code": 200}


def resolve_share(code: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Open a share by code and count the access.

    Returns:
        {success, share, build} with fresh signed download and icon URLs,
        or an error dict: 404 unknown code or unavailable file, 410 share
        or build expired, 403 wrong secret (needsSecret)
    """
    share = (
        BuildShare.objects.select_related("build").filter(share_code=code)
        .first()
    )
    if share is None:
        return _error("Share not found", 404)
    if share.is_expired:
        return _error("Share has expired", 410, expired=True)
    if not share.is_public and not constant_time_compare(
        share.secret or "", secret or ""
    ):
        return _error("Invalid secret", 403, needsSecret=True)

    build = share.build
    if build.is_expired:
        return _error("Build has expired", 410, expired=True)
    if build.status != BuildStatus.COMPLETED or not build.output_file_path:
        return _error("Build file not available", 404)

    BuildShare.objects.filter(pk=share.pk).update(
        access_count=F("access_count") + 1, updated_at=timezone.now()
    )
    share.refresh_from_db(fields=["access_count"])

    return {
        "success": True,
        "share": {
            "shareType": share.share_type,
            "expiresAt": share.expires_at.isoformat(),
            "accessCount": share.access_count,
        },
        "build": {
            "appName": build.app_name,
            "platform": build.platform,
            "versionName": build.version_name,
            "fileSize": build.file_size,
            "iconUrl": (
                get_temp_download_url(build.icon_path)
                if build.icon_path else None
            ),
            "downloadUrl": get_temp_download_url(build.output_file_path),
        },
    }


def list_shares(user, build_id: str):
    """
    The user's shares of one build, newest first.
    """
    shares = BuildShare.objects.filter(build_id=build_id, user=user)
    return [serialize_share(share) for share in shares]


def delete_share(user, share_id) -> bool:
    """
    Revoke one of the user's shares.

    Returns:
        True if a share was deleted
    """
    deleted, _ = BuildShare.objects.filter(pk=share_id, user=user).delete()
    if deleted:
        logger.info(f"[shares] deleted share={share_id} user={user.id}")
    return bool(deleted)
