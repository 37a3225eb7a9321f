"""
Build pipeline configuration.

This module configures:
- GitHub Actions remote builder for Android APKs
- Packaging templates per platform
- Watchdog thresholds for CI-dispatched builds
- Plan quota and retention limits
"""
import os

# ============================
# GitHub Actions Configuration
# ============================

# GITHUB_BUILD_CONFIG: remote CI used to compile Android APKs
# - Use Case: stage 2 of the android-apk pipeline
# - Security: keep the token in environment variables only
# - Documentation: https://docs.github.com/en/rest/actions
GITHUB_BUILD_CONFIG = {
    'api_base': os.getenv('GITHUB_API_BASE', 'https://api.github.com'),

    # Personal access token or app token with actions:write
    'token': os.getenv('GITHUB_TOKEN', ''),

    # Repository hosting the build workflow
    'owner': os.getenv('GITHUB_OWNER', ''),
    'repo': os.getenv('GITHUB_REPO', ''),

    # Workflow file and branch it is dispatched on
    'workflow_file': os.getenv(
        'GITHUB_WORKFLOW_FILE', 'build-android-apk.yml'
    ),
    'ref': os.getenv('GITHUB_REF', 'master'),

    # Request timeout (seconds) for API calls; artifact downloads use
    # download_timeout
    'timeout': int(os.getenv('GITHUB_TIMEOUT', 30)),
    'download_timeout': int(os.getenv('GITHUB_DOWNLOAD_TIMEOUT', 120)),

    # Seconds to wait after a dispatch before looking up the new run id
    'dispatch_lookup_delay': float(
        os.getenv('GITHUB_DISPATCH_LOOKUP_DELAY', 2)
    ),
}

# Shared token the workflow sends back in X-Build-Callback-Token.
# Empty disables the check.
GITHUB_CALLBACK_TOKEN = os.getenv('GITHUB_CALLBACK_TOKEN', '')

# ============================
# Packaging Templates
# ============================

# Storage keys of the per-platform templates the assembly service patches
BUILD_TEMPLATE_PATHS = {
    'android': os.getenv('BUILD_TEMPLATE_ANDROID', 'templates/android.zip'),
    'ios': os.getenv('BUILD_TEMPLATE_IOS', 'templates/ios.zip'),
    'harmonyos': os.getenv(
        'BUILD_TEMPLATE_HARMONYOS', 'templates/harmonyos.zip'
    ),
    'chrome': os.getenv(
        'BUILD_TEMPLATE_CHROME', 'templates/chrome-extension.zip'
    ),
    'wechat': os.getenv('BUILD_TEMPLATE_WECHAT', 'templates/wechat.zip'),
    'windows': os.getenv(
        'BUILD_TEMPLATE_WINDOWS', 'templates/tauri-shell.exe'
    ),
    'macos': os.getenv(
        'BUILD_TEMPLATE_MACOS', 'templates/tauri-shell.app.zip'
    ),
    'linux': os.getenv(
        'BUILD_TEMPLATE_LINUX', 'templates/tauri-shell.tar.gz'
    ),
}

# ============================
# CI Watchdog
# ============================

# A CI-dispatched build untouched for this long is resynced
BUILD_SYNC_STUCK_SECONDS = int(os.getenv('BUILD_SYNC_STUCK_SECONDS', 120))

# A sync claim older than this is considered abandoned and may be retaken
BUILD_SYNC_LOCK_TIMEOUT = int(os.getenv('BUILD_SYNC_LOCK_TIMEOUT', 300))

# How long a finished sync suppresses further attempts for the same build
BUILD_COMPLETED_CACHE_TTL = int(
    os.getenv('BUILD_COMPLETED_CACHE_TTL', 300)
)

# Minimum gap between poll-triggered sweeps for one user, scaled up while
# the GitHub API budget runs low
BUILD_POLL_SWEEP_INTERVAL = int(os.getenv('BUILD_POLL_SWEEP_INTERVAL', 30))

# ============================
# Plan Limits
# ============================

# Defaults per plan; hard caps are enforced in quota.conf
PLAN_FREE_DAILY_LIMIT = int(os.getenv('PLAN_FREE_DAILY_LIMIT', 5))
PLAN_PRO_DAILY_LIMIT = int(os.getenv('PLAN_PRO_DAILY_LIMIT', 50))
PLAN_TEAM_DAILY_LIMIT = int(os.getenv('PLAN_TEAM_DAILY_LIMIT', 500))

PLAN_FREE_RETENTION_DAYS = int(os.getenv('PLAN_FREE_RETENTION_DAYS', 3))
PLAN_PRO_RETENTION_DAYS = int(os.getenv('PLAN_PRO_RETENTION_DAYS', 14))
PLAN_TEAM_RETENTION_DAYS = int(os.getenv('PLAN_TEAM_RETENTION_DAYS', 90))

PLAN_FREE_SHARE_DAYS = int(os.getenv('PLAN_FREE_SHARE_DAYS', 0))
PLAN_PRO_SHARE_DAYS = int(os.getenv('PLAN_PRO_SHARE_DAYS', 7))
PLAN_TEAM_SHARE_DAYS = int(os.getenv('PLAN_TEAM_SHARE_DAYS', 30))

# ============================
# Shares
# ============================

# Public page that renders share links; defaults to BUILD_PUBLIC_BASE_URL
SHARE_PAGE_BASE_URL = os.getenv('SHARE_PAGE_BASE_URL', '')
