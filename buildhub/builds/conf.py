"""
Builds app configuration. Reads from Django settings.
"""
from django.conf import settings

from .constants import Platform

# Soft time limit (seconds) for in-process packaging per platform
BUILD_TIMEOUTS = {
    Platform.CHROME: 60,
    Platform.WECHAT: 60,
}
DEFAULT_BUILD_TIMEOUT = 90

# Icon download attempts: one timeout (seconds) per attempt
ICON_FETCH_TIMEOUTS = (30, 45, 60)
ICON_FETCH_RETRY_DELAY = 1


def get_build_timeout(platform):
    return BUILD_TIMEOUTS.get(platform, DEFAULT_BUILD_TIMEOUT)


def get_storage_alias():
    return getattr(settings, "BUILD_STORAGE_ALIAS", "builds")


def get_public_base_url():
    base = getattr(settings, "BUILD_PUBLIC_BASE_URL", "http://localhost:8000")
    return base.rstrip("/")


def get_download_url_ttl():
    return int(getattr(settings, "BUILD_DOWNLOAD_URL_TTL", 3600))


def get_max_image_upload_mb():
    """
    Maximum icon size in MB. 0 disables icon upload.
    """
    try:
        return float(getattr(settings, "MAX_IMAGE_UPLOAD_MB", 5))
    except (TypeError, ValueError):
        return 5.0


def get_max_image_upload_bytes():
    return int(get_max_image_upload_mb() * 1024 * 1024)


def is_icon_upload_enabled():
    return get_max_image_upload_mb() > 0


def get_template_path(platform):
    return getattr(settings, "BUILD_TEMPLATE_PATHS", {}).get(platform)


def get_github_config():
    return dict(getattr(settings, "GITHUB_BUILD_CONFIG", {}))


def get_callback_token():
    return getattr(settings, "GITHUB_CALLBACK_TOKEN", "")


def get_sync_stuck_seconds():
    return int(getattr(settings, "BUILD_SYNC_STUCK_SECONDS", 120))


def get_sync_lock_timeout():
    return int(getattr(settings, "BUILD_SYNC_LOCK_TIMEOUT", 300))


def get_completed_cache_ttl():
    return int(getattr(settings, "BUILD_COMPLETED_CACHE_TTL", 300))


def get_poll_sweep_interval():
    return int(getattr(settings, "BUILD_POLL_SWEEP_INTERVAL", 30))
