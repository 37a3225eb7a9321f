"""
Quota app configuration. Reads plan limits from Django settings and clamps
them to hard caps.
"""
from django.conf import settings

from .constants import Plan

# Hard caps; misconfigured environment values never exceed these
DAILY_LIMIT_CAPS = {
    Plan.FREE: 100,
    Plan.PRO: 1000,
    Plan.TEAM: 10000,
}

RETENTION_DAYS_CAPS = {
    Plan.FREE: 30,
    Plan.PRO: 90,
    Plan.TEAM: 365,
}

_DAILY_LIMIT_DEFAULTS = {
    Plan.FREE: ("PLAN_FREE_DAILY_LIMIT", 5),
    Plan.PRO: ("PLAN_PRO_DAILY_LIMIT", 50),
    Plan.TEAM: ("PLAN_TEAM_DAILY_LIMIT", 500),
}

_RETENTION_DEFAULTS = {
    Plan.FREE: ("PLAN_FREE_RETENTION_DAYS", 3),
    Plan.PRO: ("PLAN_PRO_RETENTION_DAYS", 14),
    Plan.TEAM: ("PLAN_TEAM_RETENTION_DAYS", 90),
}

_SHARE_DAYS_DEFAULTS = {
    Plan.FREE: ("PLAN_FREE_SHARE_DAYS", 0),
    Plan.PRO: ("PLAN_PRO_SHARE_DAYS", 7),
    Plan.TEAM: ("PLAN_TEAM_SHARE_DAYS", 30),
}


def _setting_int(name, default):
    try:
        return int(getattr(settings, name, default))
    except (TypeError, ValueError):
        return default


def _clamp(value, low, high):
    return max(low, min(value, high))


def get_plan_daily_limit(plan):
    plan = Plan.normalize(plan)
    name, default = _DAILY_LIMIT_DEFAULTS[plan]
    return _clamp(_setting_int(name, default), 1, DAILY_LIMIT_CAPS[plan])


def get_plan_retention_days(plan):
    plan = Plan.normalize(plan)
    name, default = _RETENTION_DEFAULTS[plan]
    return _clamp(_setting_int(name, default), 1, RETENTION_DAYS_CAPS[plan])


def get_plan_share_days(plan):
    """
    Maximum share link lifetime in days; 0 means sharing is unavailable.
    """
    plan = Plan.normalize(plan)
    name, default = _SHARE_DAYS_DEFAULTS[plan]
    return max(0, _setting_int(name, default))


def plan_supports_batch(plan):
    return Plan.normalize(plan) != Plan.FREE


def plan_supports_qrcode_share(plan):
    return Plan.normalize(plan) == Plan.TEAM
