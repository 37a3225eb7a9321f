"""
GitHub API rate limit tracking.

The latest X-RateLimit-* snapshot is kept in the Django cache so every
worker process sees the same view.
"""
import logging
import time
from typing import Optional

from django.core.cache import cache

logger = logging.getLogger(__name__)

RATE_LIMIT_CACHE_KEY = "builds:github:rate_limit"
RATE_LIMIT_CACHE_TTL = 3600

# Throttle background sweeps past this share of the hourly budget
THROTTLE_USAGE_PERCENT = 80
NEAR_LIMIT_REMAINING = 100


def update_rate_limit(headers) -> Optional[dict]:
    """
    Record rate limit headers from a GitHub API response.

    Returns:
        The stored snapshot, or None when the headers are absent
    """
    limit = headers.get("x-ratelimit-limit")
    remaining = headers.get("x-ratelimit-remaining")
    reset = headers.get("x-ratelimit-reset")
    if not (limit and remaining and reset):
        return None
    try:
        info = {
            "limit": int(limit),
            "remaining": int(remaining),
            "reset": int(reset),
            "used": int(headers.get("x-ratelimit-used") or 0),
        }
    except (TypeError, ValueError):
        return None

    cache.set(RATE_LIMIT_CACHE_KEY, info, RATE_LIMIT_CACHE_TTL)
    if info["remaining"] < NEAR_LIMIT_REMAINING:
        logger.warning(
            f"[github] rate limit warning: "
            f"{info['remaining']}/{info['limit']} remaining"
        )
    return info


def get_rate_limit_info() -> Optional[dict]:
    return cache.get(RATE_LIMIT_CACHE_KEY)


def _usage_percent(info) -> float:
    if not info or not info.get("limit"):
        return 0.0
    return (info["limit"] - info["remaining"]) / info["limit"] * 100


def should_throttle() -> bool:
    """
    True when more than 80% of the hourly budget is used.
    """
    return _usage_percent(get_rate_limit_info()) > THROTTLE_USAGE_PERCENT


def is_near_limit() -> bool:
    info = get_rate_limit_info()
    return bool(info) and info["remaining"] < NEAR_LIMIT_REMAINING


def get_recommended_interval(base_interval: int) -> int:
    """
    Scale a polling interval by current usage: x3 above 90%, x2 above 80%.
    """
    usage = _usage_percent(get_rate_limit_info())
    if usage > 90:
        return base_interval * 3
    if usage > THROTTLE_USAGE_PERCENT:
        return base_interval * 2
    return base_interval


def get_seconds_until_reset() -> int:
    info = get_rate_limit_info()
    if not info:
        return 0
    return max(0, info["reset"] - int(time.time()))
