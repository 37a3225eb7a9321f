"""
Quota ledger model: one wallet per user.
"""
from django.conf import settings
from django.db import models

from .constants import Plan


class UserWallet(models.Model):
    """
    Daily build allowance for a user.

    daily_builds_used only counts builds made on daily_builds_reset_at;
    a stale reset marker means nothing has been used today.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wallet",
        help_text="Owner of this wallet",
    )
    plan = models.CharField(
        max_length=16,
        choices=Plan.CHOICES,
        default=Plan.FREE,
        help_text="Subscription plan driving limits and retention",
    )
    daily_builds_limit = models.PositiveIntegerField(
        default=5,
        help_text="Builds allowed per day",
    )
    daily_builds_used = models.PositiveIntegerField(
        default=0,
        help_text="Builds consumed on daily_builds_reset_at",
    )
    daily_builds_reset_at = models.CharField(
        max_length=10,
        blank=True,
        default="",
        help_text="Server-local date (YYYY-MM-DD) the counter belongs to",
    )
    file_retention_days = models.PositiveIntegerField(
        default=3,
        help_text="Days a build's files stay downloadable",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "quota_user_wallet"
        verbose_name = "User Wallet"
        verbose_name_plural = "User Wallets"
        ordering = ["user_id"]

    def __str__(self):
        return (
            f"UserWallet(user={self.user_id}, plan={self.plan}, "
            f"{self.daily_builds_used}/{self.daily_builds_limit})"
        )
