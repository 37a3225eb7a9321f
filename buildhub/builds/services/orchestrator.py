"""
Build orchestration.

Submission validates the request, deducts quota, creates one BuildRecord
per platform and hands each record to its own Celery task. Processing moves
a record pending -> processing -> completed|failed through conditional
updates, so a terminal status is never overwritten and progress never
goes backwards.
"""
import base64
import binascii
import logging
import re
from datetime import timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone

from quota.conf import plan_supports_batch
from quota.services import (
    check_daily_quota,
    consume_daily_quota,
    get_or_create_wallet,
    refund_daily_quota,
)

from ..conf import get_build_timeout, get_public_base_url, is_icon_upload_enabled
from ..constants import (
    DEFAULT_STAGE_PROGRESS,
    STAGE_PROGRESS,
    BuildErrorType,
    BuildStatus,
    Platform,
)
from ..exceptions import BuildError
from ..models import BuildRecord
from .assembly import get_assembler
from .expiry import compute_expires_at
from .icons import resolve_icon, validate_icon_size
from .storage import (
    build_file_path,
    download_file,
    get_temp_download_url,
    icon_file_path,
    is_user_upload_path,
    upload_file,
    user_upload_prefix,
)

logger = logging.getLogger(__name__)

PACKAGE_NAME_PATTERN = re.compile(
    r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)+$", re.IGNORECASE
)

# Request keys stored on dedicated columns; anything else lands in config
RECORD_FIELDS = (
    "app_name",
    "package_name",
    "version_name",
    "version_code",
    "privacy_policy",
    "icon_path",
)
ICON_SOURCE_FIELDS = ("icon_url", "icon_base64")


def _error(error: str, message: str, status_code: int) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "message": message,
        "status_code": status_code,
    }


def default_package_name(app_name: str) -> str:
    """
    Derive com.app.<name> from an app name.
    """
    name = re.sub(r"[^a-z0-9]", "", (app_name or "").lower())
    if not name or not name[0].isalpha():
        name = f"app{name}"
    return f"com.app.{name}"


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url or "")
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def normalize_config(platform: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fill defaults for a platform request.
    """
    config = {k: v for k, v in (config or {}).items() if v not in (None, "")}
    config.setdefault("version_name", "1.0.0")
    config["version_code"] = str(config.get("version_code", "1"))
    if (
        platform in Platform.get_package_name_platforms()
        and not config.get("package_name")
    ):
        config["package_name"] = default_package_name(config.get("app_name"))
    return config


def validate_platform_config(
    platform: str,
    config: Dict[str, Any],
    batch: bool = False,
    user_id: Optional[int] = None,
) -> Optional[Dict[str, Any]]:
    """
    Validate one platform request.

    icon_path must be a key under the requesting user's upload prefix.

    Returns:
        An error dict (status 400), or None when valid
    """
    allowed = (
        Platform.get_batch_platforms() if batch
        else Platform.get_submittable_platforms()
    )
    if platform == Platform.ANDROID_APK and batch:
        return _error(
            "Invalid platform",
            "android-apk builds cannot be part of a batch",
            400,
        )
    if platform not in allowed:
        return _error(
            "Invalid platform", f"Unsupported platform: {platform}", 400
        )
    if not config.get("app_name"):
        return _error("Missing required fields", "appName is required", 400)
    if not is_valid_url(config.get("url")):
        return _error("Invalid URL", "Please provide a valid URL", 400)

    package_name = config.get("package_name")
    if (
        platform in Platform.get_package_name_platforms()
        and not PACKAGE_NAME_PATTERN.match(package_name or "")
    ):
        return _error(
            "Invalid package name",
            "Package name should be in format: com.example.app",
            400,
        )

    icon_path = config.get("icon_path")
    if icon_path and not is_user_upload_path(user_id, icon_path):
        return _error(
            "Invalid icon",
            f"iconPath must be under {user_upload_prefix(user_id)}",
            400,
        )

    icon_data = config.get("icon_base64")
    if icon_data:
        if not is_icon_upload_enabled():
            return _error(
                "Icon upload disabled", "Icon upload is disabled", 400
            )
        size = _inline_icon_size(icon_data)
        if size is None:
            return _error("Invalid icon", "Icon data is not valid base64", 400)
        check = validate_icon_size(size)
        if not check["valid"]:
            return _error(
                "Icon too large",
                f"Icon size {check['file_size_mb']}MB exceeds limit "
                f"{check['max_size_mb']}MB",
                400,
            )
    return None


def _inline_icon_size(value: str) -> Optional[int]:
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return len(base64.b64decode(value, validate=True))
    except (binascii.Error, ValueError):
        return None


def _reserve_quota(user_id: int, count: int) -> Optional[Dict[str, Any]]:
    """
    Check then consume `count` units.

    Returns:
        An error dict (429/500), or None when the units were deducted
    """
    check = check_daily_quota(user_id, count)
    if not check["allowed"]:
        error = _error(
            "Quota exceeded",
            f"Daily build quota exceeded. Need: {count}, "
            f"Remaining: {check['remaining']}/{check['limit']}",
            429,
        )
        error.update(remaining=check["remaining"], limit=check["limit"])
        return error

    consumed = consume_daily_quota(user_id, count)
    if not consumed["success"]:
        if consumed.get("error") == "Insufficient daily build quota":
            return _error("Quota exceeded", consumed["error"], 429)
        return _error("Quota deduction failed", consumed.get("error"), 500)
    return None


def create_build_record(
    user,
    platform: str,
    config: Dict[str, Any],
    expires_at,
    created_at=None,
) -> BuildRecord:
    """
    Insert a pending BuildRecord for one platform.

    Raises:
        DatabaseError: If the insert fails
    """
    fields = {name: config[name] for name in RECORD_FIELDS if name in config}
    extra = {
        k: v for k, v in config.items()
        if k not in RECORD_FIELDS and k not in ICON_SOURCE_FIELDS
        and k not in ("url", "platform")
    }
    created_at = created_at or timezone.now()
    return BuildRecord.objects.create(
        user=user,
        platform=platform,
        url=config["url"],
        config=extra,
        status=BuildStatus.PENDING,
        progress=0,
        expires_at=expires_at,
        created_at=created_at,
        **fields,
    )


def dispatch_build(
    build: BuildRecord,
    icon_url: Optional[str] = None,
    icon_base64: Optional[str] = None,
) -> None:
    """
    Enqueue the processing task for a record.
    """
    from .. import tasks

    kwargs = {"icon_url": icon_url, "icon_base64": icon_base64}
    if build.platform == Platform.ANDROID_APK:
        task = tasks.process_apk_build
        soft_limit = None
    else:
        task = tasks.process_build
        soft_limit = get_build_timeout(build.platform)

    options = {}
    if soft_limit:
        options = {"soft_time_limit": soft_limit, "time_limit": soft_limit + 30}
    task.apply_async(args=[build.id], kwargs=kwargs, **options)
    logger.info(
        f"[builds] dispatched build={build.id} platform={build.platform}"
    )


def submit_build(user, platform: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Submit a single-platform build.

    Args:
        user: Requesting user
        platform: Target platform
        config: Request fields (url, app_name, package_name, version_name,
            version_code, privacy_policy, icon_path/icon_url/icon_base64
            and platform extras)

    Returns:
        {success, build_id, status_code} or an error dict
    """
    config = normalize_config(platform, config)
    error = validate_platform_config(platform, config, user_id=user.id)
    if error:
        return error

    error = _reserve_quota(user.id, 1)
    if error:
        return error

    wallet = get_or_create_wallet(user.id)
    expires_at = compute_expires_at(wallet.file_retention_days)
    try:
        build = create_build_record(user, platform, config, expires_at)
    except DatabaseError as e:
        logger.error(
            f"[builds] record insert failed user={user.id} "
            f"platform={platform}: {e}"
        )
        refund_daily_quota(user.id, 1)
        return _error("Database error", "Failed to create build record", 500)

    dispatch_build(
        build,
        icon_url=config.get("icon_url"),
        icon_base64=config.get("icon_base64"),
    )
    logger.info(
        f"[builds] submitted build={build.id} user={user.id} "
        f"platform={platform}"
    )
    return {"success": True, "build_id": build.id, "status_code": 201}


def submit_batch(
    user, url: str, platform_configs: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """
    Submit one build per platform entry sharing the same URL.

    Quota for every platform is deducted up front. A record that fails to
    insert refunds its own unit; if none could be created everything is
    refunded.

    Returns:
        {success, build_ids, status_code} or an error dict
    """
    if not is_valid_url(url):
        return _error("Invalid URL", "Please provide a valid URL", 400)
    if not platform_configs:
        return _error(
            "Missing required fields", "url and platforms are required", 400
        )

    wallet = get_or_create_wallet(user.id)
    if wallet is None:
        return _error("Unauthorized", "User not found", 401)
    if not plan_supports_batch(wallet.plan):
        return _error(
            "Batch not available",
            "Batch builds are not available for the Free plan",
            403,
        )

    entries = []
    for raw in platform_configs:
        platform = raw.get("platform")
        config = normalize_config(platform, {**raw, "url": url})
        error = validate_platform_config(
            platform, config, batch=True, user_id=user.id
        )
        if error:
            return error
        entries.append((platform, config))

    count = len(entries)
    error = _reserve_quota(user.id, count)
    if error:
        return error

    expires_at = compute_expires_at(wallet.file_retention_days)
    now = timezone.now()
    created = []
    for index, (platform, config) in enumerate(entries):
        # First platform gets the newest timestamp so lists show it on top
        created_at = now + timedelta(milliseconds=count - index)
        try:
            build = create_build_record(
                user, platform, config, expires_at, created_at
            )
        except DatabaseError as e:
            logger.error(
                f"[builds] batch insert failed user={user.id} "
                f"platform={platform}: {e}"
            )
            if created:
                refund_daily_quota(user.id, 1)
                continue
            # First insert failed: abort without trying the rest
            refund_daily_quota(user.id, count - len(created))
            return _error(
                "Database error", "Failed to create build record", 500
            )
        created.append((build, config))

    for build, config in created:
        dispatch_build(
            build,
            icon_url=config.get("icon_url"),
            icon_base64=config.get("icon_base64"),
        )

    build_ids = [build.id for build, _ in created]
    logger.info(
        f"[builds] batch submitted user={user.id} count={len(build_ids)} "
        f"requested={count}"
    )
    return {"success": True, "build_ids": build_ids, "status_code": 200}


def _active(build_id: str):
    return BuildRecord.objects.filter(
        pk=build_id, status__in=BuildStatus.get_active_statuses()
    )


def get_stage_progress(platform: str, stage: str) -> Optional[int]:
    table = STAGE_PROGRESS.get(platform, DEFAULT_STAGE_PROGRESS)
    if stage in table:
        return table[stage]
    return DEFAULT_STAGE_PROGRESS.get(stage)


def mark_processing(build_id: str, progress: int = 0) -> bool:
    """
    Move a pending record to processing.

    Returns:
        True if this call performed the transition
    """
    updated = BuildRecord.objects.filter(
        pk=build_id, status=BuildStatus.PENDING
    ).update(
        status=BuildStatus.PROCESSING,
        progress=progress,
        updated_at=timezone.now(),
    )
    return bool(updated)


def update_progress(
    build_id: str,
    platform: Optional[str] = None,
    stage: Optional[str] = None,
    progress: Optional[int] = None,
) -> bool:
    """
    Advance progress of a non-terminal record, by stage name or value.
    A lower value than the stored one is ignored.
    """
    if progress is None:
        progress = get_stage_progress(platform, stage)
    if progress is None:
        return False
    progress = max(0, min(100, int(progress)))
    updated = _active(build_id).filter(progress__lte=progress).update(
        progress=progress, updated_at=timezone.now()
    )
    return bool(updated)


def complete_build(
    build_id: str, output_file_path: str, file_size: Optional[int] = None
) -> bool:
    """
    Mark a record completed with its stored artifact and a fresh download
    link. No-op on a record already terminal.
    """
    download_url = get_temp_download_url(output_file_path)
    updated = _active(build_id).update(
        status=BuildStatus.COMPLETED,
        progress=100,
        output_file_path=output_file_path,
        download_url=download_url,
        file_size=file_size,
        error_message=None,
        syncing_since=None,
        updated_at=timezone.now(),
    )
    if updated:
        logger.info(
            f"[builds] completed build={build_id} path={output_file_path}"
        )
    return bool(updated)


def fail_build(build_id: str, message: str, refund: bool = True) -> bool:
    """
    Mark a record failed and return its quota unit.

    The refund happens at most once per record, whatever the number of
    callers racing to fail it. Intermediate source records hold no quota.

    Returns:
        True if this call performed the transition
    """
    message = message or BuildErrorType.MESSAGES[BuildErrorType.UNKNOWN]
    updated = _active(build_id).update(
        status=BuildStatus.FAILED,
        error_message=message,
        syncing_since=None,
        updated_at=timezone.now(),
    )
    if not updated:
        return False
    logger.warning(f"[builds] failed build={build_id}: {message}")

    record = BuildRecord.objects.filter(pk=build_id).values(
        "user_id", "platform"
    ).first()
    if not refund or not record or record["platform"] == Platform.ANDROID_SOURCE:
        return True

    claimed = BuildRecord.objects.filter(
        pk=build_id, quota_refunded=False
    ).update(quota_refunded=True)
    if claimed:
        result = refund_daily_quota(record["user_id"], 1)
        if not result["success"]:
            logger.error(
                f"[builds] refund failed build={build_id}: "
                f"{result.get('error')}"
            )
    return True


def process_build(
    build_id: str,
    icon_url: Optional[str] = None,
    icon_base64: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Package a record in-process and publish the artifact.

    Exceptions propagate to the caller, which owns failing the record.

    Returns:
        {'success': True, 'build_id', 'output_file_path'} or a skip result
    """
    build = BuildRecord.objects.filter(pk=build_id).first()
    if build is None:
        return {"success": False, "error": "Build not found"}
    if build.is_terminal:
        return {"success": False, "status": "skipped",
                "reason": f"build already {build.status}"}

    platform = build.platform
    mark_processing(build.id)

    icon_path = build.icon_path
    if icon_path != icon_file_path(build.id) and not is_user_upload_path(
        build.user_id, icon_path
    ):
        icon_path = None
    icon_key = resolve_icon(build.id, icon_path, icon_url, icon_base64)
    if icon_key != build.icon_path:
        BuildRecord.objects.filter(pk=build.id).update(icon_path=icon_key)
        build.icon_path = icon_key
    icon = download_file(icon_key) if icon_key else None

    assembler = get_assembler(platform)
    result = assembler.assemble(
        build,
        icon=icon,
        on_stage=lambda stage: update_progress(build.id, platform, stage),
    )

    update_progress(build.id, platform, "uploading")
    try:
        path = upload_file(build_file_path(build.id, result.file_name),
                           result.data)
    except OSError as e:
        raise BuildError(f"Upload failed: {e}", BuildErrorType.STORAGE)

    update_progress(build.id, platform, "finalizing")
    complete_build(build.id, path, len(result.data))
    return {"success": True, "build_id": build.id, "output_file_path": path}


def get_callback_url(build_id: str) -> str:
    path = reverse("build-github-callback", kwargs={"build_id": build_id})
    return f"{get_public_base_url()}{path}"


def run_apk_pipeline(
    build_id: str,
    icon_url: Optional[str] = None,
    icon_base64: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Stage 1 of the APK build: generate the Android source project under an
    intermediate record and dispatch the CI workflow that compiles it.

    The build then waits at the CI progress mark until the callback or the
    watchdog publishes the APK.

    Raises:
        BuildError: If source generation or the dispatch fails
    """
    from .github import GitHubActionsClient

    build = BuildRecord.objects.filter(pk=build_id).first()
    if build is None:
        return {"success": False, "error": "Build not found"}
    if build.is_terminal:
        return {"success": False, "status": "skipped",
                "reason": f"build already {build.status}"}

    platform = build.platform
    mark_processing(build.id, get_stage_progress(platform, "downloading"))

    source, _ = BuildRecord.objects.update_or_create(
        id=build.source_build_id,
        defaults={
            "user_id": build.user_id,
            "platform": Platform.ANDROID_SOURCE,
            "app_name": build.app_name,
            "package_name": build.package_name,
            "version_name": build.version_name,
            "version_code": build.version_code,
            "url": build.url,
            "privacy_policy": build.privacy_policy,
            "icon_path": build.icon_path,
            "config": build.config,
            "status": BuildStatus.PENDING,
            "progress": 0,
            "expires_at": build.expires_at,
        },
    )
    process_build(source.id, icon_url=icon_url, icon_base64=icon_base64)

    source.refresh_from_db()
    if source.status != BuildStatus.COMPLETED or not source.output_file_path:
        raise BuildError(
            "Failed to generate Android Source", BuildErrorType.UNKNOWN
        )
    source_url = get_temp_download_url(source.output_file_path)
    update_progress(build.id, platform, "source_ready")

    result = GitHubActionsClient().trigger_build(
        build.id, source_url, get_callback_url(build.id)
    )
    if not result["success"]:
        raise BuildError(
            f"GitHub Actions trigger failed: {result['error']}",
            BuildErrorType.NETWORK,
        )

    _active(build.id).filter(
        progress__lte=get_stage_progress(platform, "ci_dispatched")
    ).update(
        progress=get_stage_progress(platform, "ci_dispatched"),
        github_run_id=result["run_id"],
        updated_at=timezone.now(),
    )
    logger.info(
        f"[builds] apk build={build.id} waiting on CI "
        f"run_id={result['run_id']}"
    )
    return {"success": True, "build_id": build.id,
            "github_run_id": result["run_id"]}
