"""
Quota services.
"""
from .ledger import (
    check_daily_quota,
    consume_daily_quota,
    get_or_create_wallet,
    get_retention_days,
    refund_daily_quota,
    upgrade_plan,
)

__all__ = [
    "check_daily_quota",
    "consume_daily_quota",
    "get_or_create_wallet",
    "get_retention_days",
    "refund_daily_quota",
    "upgrade_plan",
]
