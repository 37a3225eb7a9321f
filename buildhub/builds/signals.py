"""
Signal receivers for the builds app.

Extends retention of live builds when the owner's plan is upgraded.
"""
import logging

from django.dispatch import receiver

from quota.signals import plan_upgraded

from .services.expiry import extend_expiry_for_user

logger = logging.getLogger(__name__)


@receiver(plan_upgraded)
def extend_builds_on_plan_upgrade(sender, user_id, file_retention_days,
                                  **kwargs):
    """
    Apply the new retention window to the user's unexpired builds.
    """
    try:
        extend_expiry_for_user(user_id, file_retention_days)
    except Exception as e:
        logger.warning(
            f"[builds] failed to extend expiry user={user_id}: {e}"
        )
