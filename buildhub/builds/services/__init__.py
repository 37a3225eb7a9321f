"""
Build services.
"""
from .ci_sync import handle_ci_callback, sync_build_with_ci
from .expiry import purge_expired_builds
from .orchestrator import (
    complete_build,
    fail_build,
    submit_batch,
    submit_build,
)
from .watchdog import auto_sync_stuck_builds, request_user_sweep

__all__ = [
    "auto_sync_stuck_builds",
    "complete_build",
    "fail_build",
    "handle_ci_callback",
    "purge_expired_builds",
    "request_user_sweep",
    "submit_batch",
    "submit_build",
    "sync_build_with_ci",
]
