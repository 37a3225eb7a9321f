# Generated manually for builds

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import builds.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="BuildRecord",
            fields=[
                ("id", models.CharField(default=builds.models.generate_build_id, editable=False, help_text="Public build id (UUID, or '<id>-source' for intermediates)", max_length=64, primary_key=True, serialize=False)),
                ("platform", models.CharField(choices=[("android", "Android (source)"), ("android-apk", "Android APK"), ("android-source", "Android APK intermediate source"), ("ios", "iOS"), ("harmonyos", "HarmonyOS"), ("windows", "Windows"), ("macos", "macOS"), ("linux", "Linux"), ("chrome", "Chrome extension"), ("wechat", "WeChat mini program")], db_index=True, max_length=32)),
                ("app_name", models.CharField(max_length=128)),
                ("package_name", models.CharField(blank=True, default="", help_text="Package / bundle identifier", max_length=255)),
                ("version_name", models.CharField(default="1.0.0", max_length=32)),
                ("version_code", models.CharField(default="1", max_length=16)),
                ("url", models.URLField(help_text="Target web URL", max_length=2048)),
                ("privacy_policy", models.TextField(blank=True, default="")),
                ("icon_path", models.CharField(blank=True, help_text="Storage key of the build icon", max_length=1024, null=True)),
                ("config", models.JSONField(blank=True, default=dict, help_text="Platform-specific options (app_id, description, ...)")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("processing", "Processing"), ("completed", "Completed"), ("failed", "Failed")], db_index=True, default="pending", max_length=16)),
                ("progress", models.PositiveSmallIntegerField(default=0)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("output_file_path", models.CharField(blank=True, help_text="Storage key of the produced artifact", max_length=1024, null=True)),
                ("download_url", models.CharField(blank=True, help_text="Last issued short-lived download link", max_length=2048, null=True)),
                ("file_size", models.BigIntegerField(blank=True, null=True)),
                ("expires_at", models.DateTimeField(db_index=True, help_text="Files are purged after this time")),
                ("github_run_id", models.CharField(blank=True, help_text="Workflow run compiling this build", max_length=32, null=True)),
                ("github_artifact_url", models.CharField(blank=True, max_length=1024, null=True)),
                ("syncing_since", models.DateTimeField(blank=True, help_text="Set while a CI sync holds this build", null=True)),
                ("quota_refunded", models.BooleanField(default=False, help_text="Quota unit already returned for this failed build")),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Owner of this build",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="builds",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Build Record",
                "verbose_name_plural": "Build Records",
                "db_table": "builds_build_record",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="builds_buil_user_id_3f1c2a_idx"),
                    models.Index(fields=["user", "created_at"], name="builds_buil_user_id_8b7d4e_idx"),
                    models.Index(fields=["platform", "status", "progress"], name="builds_buil_platfor_5a9e0c_idx"),
                ],
            },
        ),
    ]
