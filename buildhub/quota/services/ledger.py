"""
Quota ledger: check, consume and refund a user's daily build allowance.

The counter resets lazily: when the wallet's reset marker is not today's
server-local date, the stored usage belongs to an earlier day and counts as
zero. Consume and refund lock the wallet row so concurrent submissions
cannot push usage past the limit.
"""
import logging
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from ..conf import get_plan_daily_limit, get_plan_retention_days
from ..constants import MAX_QUOTA_COUNT, MIN_QUOTA_COUNT, Plan
from ..models import UserWallet
from ..signals import plan_upgraded

logger = logging.getLogger(__name__)


def get_today_string() -> str:
    """
    Return today's server-local date as YYYY-MM-DD.
    """
    return timezone.localdate().isoformat()


def _valid_count(count) -> bool:
    return (
        isinstance(count, int)
        and not isinstance(count, bool)
        and MIN_QUOTA_COUNT <= count <= MAX_QUOTA_COUNT
    )


def get_or_create_wallet(user_id: int) -> Optional[UserWallet]:
    """
    Return the user's wallet, creating a Free plan wallet on first use.

    Args:
        user_id: Owner's user id

    Returns:
        UserWallet, or None if the user does not exist
    """
    if not get_user_model().objects.filter(pk=user_id).exists():
        return None
    wallet, created = UserWallet.objects.get_or_create(
        user_id=user_id,
        defaults={
            "plan": Plan.FREE,
            "daily_builds_limit": get_plan_daily_limit(Plan.FREE),
            "daily_builds_used": 0,
            "daily_builds_reset_at": get_today_string(),
            "file_retention_days": get_plan_retention_days(Plan.FREE),
        },
    )
    if created:
        logger.info(f"[quota] wallet created user={user_id} plan=Free")
    return wallet


def get_retention_days(user_id: int) -> int:
    """
    Return the user's retention window in days (Free default when unknown).
    """
    wallet = get_or_create_wallet(user_id)
    if wallet is None or not wallet.file_retention_days:
        return get_plan_retention_days(Plan.FREE)
    return wallet.file_retention_days


def check_daily_quota(user_id: int, count: int = 1) -> Dict[str, Any]:
    """
    Check whether the user can start `count` more builds today.

    Persists the lazy reset when the stored marker is from an earlier day.

    Returns:
        {'allowed': bool, 'remaining': int, 'limit': int}
    """
    wallet = get_or_create_wallet(user_id)
    if wallet is None:
        return {"allowed": False, "remaining": 0, "limit": 0}

    today = get_today_string()
    limit = wallet.daily_builds_limit
    is_new_day = wallet.daily_builds_reset_at != today
    used = 0 if is_new_day else wallet.daily_builds_used

    if is_new_day:
        UserWallet.objects.filter(pk=wallet.pk).exclude(
            daily_builds_reset_at=today
        ).update(
            daily_builds_used=0,
            daily_builds_reset_at=today,
            updated_at=timezone.now(),
        )

    return {
        "allowed": used + count <= limit,
        "remaining": max(0, limit - used),
        "limit": limit,
    }


def consume_daily_quota(user_id: int, count: int = 1) -> Dict[str, Any]:
    """
    Deduct `count` builds from today's allowance.

    A deduction that would exceed the limit leaves the wallet untouched.

    Returns:
        {'success': True, 'remaining': int} or
        {'success': False, 'error': str}
    """
    if not user_id:
        return {"success": False, "error": "Invalid userId"}
    if not _valid_count(count):
        return {
            "success": False,
            "error": "Invalid count: must be between 1 and 1000",
        }
    if get_or_create_wallet(user_id) is None:
        return {"success": False, "error": "User not found"}

    today = get_today_string()
    with transaction.atomic():
        wallet = UserWallet.objects.select_for_update().get(user_id=user_id)
        is_new_day = wallet.daily_builds_reset_at != today
        used = 0 if is_new_day else wallet.daily_builds_used
        next_used = used + count

        if next_used > wallet.daily_builds_limit:
            logger.info(
                f"[quota] consume rejected user={user_id} count={count} "
                f"used={used} limit={wallet.daily_builds_limit}"
            )
            return {"success": False, "error": "Insufficient daily build quota"}

        wallet.daily_builds_used = next_used
        wallet.daily_builds_reset_at = today
        wallet.save(update_fields=[
            "daily_builds_used", "daily_builds_reset_at", "updated_at",
        ])

    logger.info(
        f"[quota] consumed user={user_id} count={count} "
        f"used={next_used}/{wallet.daily_builds_limit}"
    )
    return {
        "success": True,
        "remaining": wallet.daily_builds_limit - next_used,
    }


def refund_daily_quota(user_id: int, count: int = 1) -> Dict[str, Any]:
    """
    Give back `count` builds after a failed build. Usage never drops below 0.

    Returns:
        {'success': bool, 'error': str (on failure)}
    """
    if not user_id:
        return {"success": False, "error": "Invalid userId"}
    if not _valid_count(count):
        return {
            "success": False,
            "error": "Invalid count: must be between 1 and 1000",
        }

    with transaction.atomic():
        wallet = (
            UserWallet.objects.select_for_update()
            .filter(user_id=user_id)
            .first()
        )
        if wallet is None:
            return {"success": False, "error": "User not found"}

        if wallet.daily_builds_used < count:
            logger.warning(
                f"[quota] refunding more than used user={user_id} "
                f"used={wallet.daily_builds_used} refund={count}"
            )
        new_used = max(0, wallet.daily_builds_used - count)
        wallet.daily_builds_used = new_used
        wallet.save(update_fields=["daily_builds_used", "updated_at"])

    logger.info(
        f"[quota] refunded user={user_id} count={count} used={new_used}"
    )
    return {"success": True}


def upgrade_plan(user_id: int, plan: str) -> Optional[UserWallet]:
    """
    Move a wallet to a new plan: apply its limits, reset today's usage and
    notify receivers (the builds app extends retention of live builds).

    Args:
        user_id: Owner's user id
        plan: Target plan name (any casing)

    Returns:
        Updated UserWallet, or None if the user does not exist
    """
    wallet = get_or_create_wallet(user_id)
    if wallet is None:
        return None

    plan = Plan.normalize(plan)
    wallet.plan = plan
    wallet.daily_builds_limit = get_plan_daily_limit(plan)
    wallet.file_retention_days = get_plan_retention_days(plan)
    wallet.daily_builds_used = 0
    wallet.daily_builds_reset_at = get_today_string()
    wallet.save()

    logger.info(
        f"[quota] plan upgraded user={user_id} plan={plan} "
        f"limit={wallet.daily_builds_limit} "
        f"retention={wallet.file_retention_days}"
    )
    plan_upgraded.send(
        sender=UserWallet,
        user_id=user_id,
        plan=plan,
        file_retention_days=wallet.file_retention_days,
    )
    return wallet
