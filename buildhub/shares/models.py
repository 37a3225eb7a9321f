"""
Share links for completed builds.
"""
from django.conf import settings
from django.db import models
from django.utils import timezone

from .constants import SHARE_CODE_LENGTH, ShareType


class BuildShare(models.Model):
    """
    A short code granting download access to one build.

    Private shares carry a secret the recipient must present; public ones
    do not. A share never outlives its build.
    """

    share_code = models.CharField(
        max_length=SHARE_CODE_LENGTH,
        unique=True,
        help_text="Short link identifier",
    )
    build = models.ForeignKey(
        "builds.BuildRecord",
        on_delete=models.CASCADE,
        related_name="shares",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="build_shares",
        help_text="User who created the share",
    )
    share_type = models.CharField(
        max_length=16,
        choices=ShareType.CHOICES,
        default=ShareType.LINK,
    )
    is_public = models.BooleanField(default=False)
    secret = models.CharField(
        max_length=20,
        null=True,
        blank=True,
        help_text="Access secret for private shares",
    )
    expires_in_days = models.PositiveSmallIntegerField(
        default=7,
        help_text="Requested link lifetime (1-30 days)",
    )
    expires_at = models.DateTimeField(db_index=True)
    access_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "shares_build_share"
        verbose_name = "Build Share"
        verbose_name_plural = "Build Shares"
        ordering = ["-created_at"]

    def __str__(self):
        return f"BuildShare({self.share_code}, build={self.build_id})"

    @property
    def is_expired(self):
        return self.expires_at < timezone.now()
