"""
Build record model: one row per requested platform build.
"""
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from .constants import APK_EXTENSION, BuildStatus, Platform


def generate_build_id():
    return str(uuid.uuid4())


class BuildRecord(models.Model):
    """
    Lifecycle of a single platform build.

    status moves pending -> processing -> completed|failed and never
    leaves a terminal status. The android-apk pipeline also creates an
    intermediate record keyed "<id>-source" (platform android-source) that
    is removed once the APK is published.
    """

    id = models.CharField(
        max_length=64,
        primary_key=True,
        default=generate_build_id,
        editable=False,
        help_text="Public build id (UUID, or '<id>-source' for intermediates)",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="builds",
        help_text="Owner of this build",
    )
    platform = models.CharField(
        max_length=32,
        choices=Platform.CHOICES,
        db_index=True,
    )
    app_name = models.CharField(max_length=128)
    package_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Package / bundle identifier",
    )
    version_name = models.CharField(max_length=32, default="1.0.0")
    version_code = models.CharField(max_length=16, default="1")
    url = models.URLField(max_length=2048, help_text="Target web URL")
    privacy_policy = models.TextField(blank=True, default="")
    icon_path = models.CharField(
        max_length=1024,
        null=True,
        blank=True,
        help_text="Storage key of the build icon",
    )
    config = models.JSONField(
        default=dict,
        blank=True,
        help_text="Platform-specific options (app_id, description, ...)",
    )

    status = models.CharField(
        max_length=16,
        choices=BuildStatus.CHOICES,
        default=BuildStatus.PENDING,
        db_index=True,
    )
    progress = models.PositiveSmallIntegerField(default=0)
    error_message = models.TextField(null=True, blank=True)
    output_file_path = models.CharField(
        max_length=1024,
        null=True,
        blank=True,
        help_text="Storage key of the produced artifact",
    )
    download_url = models.CharField(
        max_length=2048,
        null=True,
        blank=True,
        help_text="Last issued short-lived download link",
    )
    file_size = models.BigIntegerField(null=True, blank=True)
    expires_at = models.DateTimeField(
        db_index=True,
        help_text="Files are purged after this time",
    )

    github_run_id = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Workflow run compiling this build",
    )
    github_artifact_url = models.CharField(
        max_length=1024,
        null=True,
        blank=True,
    )
    syncing_since = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set while a CI sync holds this build",
    )
    quota_refunded = models.BooleanField(
        default=False,
        help_text="Quota unit already returned for this failed build",
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "builds_build_record"
        verbose_name = "Build Record"
        verbose_name_plural = "Build Records"
        indexes = [
            models.Index(
                fields=["user", "status"],
                name="builds_buil_user_id_3f1c2a_idx",
            ),
            models.Index(
                fields=["user", "created_at"],
                name="builds_buil_user_id_8b7d4e_idx",
            ),
            models.Index(
                fields=["platform", "status", "progress"],
                name="builds_buil_platfor_5a9e0c_idx",
            ),
        ]
        ordering = ["-created_at"]

    def __str__(self):
        return f"BuildRecord({self.id}, {self.platform}, {self.status})"

    @property
    def is_terminal(self):
        return self.status in BuildStatus.get_terminal_statuses()

    @property
    def is_expired(self):
        return bool(self.expires_at and self.expires_at <= timezone.now())

    @property
    def has_final_apk(self):
        return bool(
            self.output_file_path
            and self.output_file_path.endswith(APK_EXTENSION)
        )

    @property
    def source_build_id(self):
        return f"{self.id}-source"
