"""
GitHub Actions integration for the android-apk pipeline.
"""
from .artifacts import apk_storage_name, artifact_name, find_apk_in_zip
from .client import GitHubActionsClient
from .rate_limiter import (
    get_recommended_interval,
    get_seconds_until_reset,
    is_near_limit,
    should_throttle,
)

__all__ = [
    'GitHubActionsClient',
    'apk_storage_name',
    'artifact_name',
    'find_apk_in_zip',
    'get_recommended_interval',
    'get_seconds_until_reset',
    'is_near_limit',
    'should_throttle',
]
