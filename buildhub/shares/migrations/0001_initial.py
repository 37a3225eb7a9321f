# Generated manually for shares

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("builds", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="BuildShare",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("share_code", models.CharField(help_text="Short link identifier", max_length=12, unique=True)),
                ("share_type", models.CharField(choices=[("link", "Link"), ("qrcode", "QR code")], default="link", max_length=16)),
                ("is_public", models.BooleanField(default=False)),
                ("secret", models.CharField(blank=True, help_text="Access secret for private shares", max_length=20, null=True)),
                ("expires_in_days", models.PositiveSmallIntegerField(default=7, help_text="Requested link lifetime (1-30 days)")),
                ("expires_at", models.DateTimeField(db_index=True)),
                ("access_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "build",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shares",
                        to="builds.buildrecord",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="User who created the share",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="build_shares",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Build Share",
                "verbose_name_plural": "Build Shares",
                "db_table": "shares_build_share",
                "ordering": ["-created_at"],
            },
        ),
    ]
