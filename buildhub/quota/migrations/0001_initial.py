# Generated manually for quota

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserWallet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("plan", models.CharField(choices=[("Free", "Free"), ("Pro", "Pro"), ("Team", "Team")], default="Free", help_text="Subscription plan driving limits and retention", max_length=16)),
                ("daily_builds_limit", models.PositiveIntegerField(default=5, help_text="Builds allowed per day")),
                ("daily_builds_used", models.PositiveIntegerField(default=0, help_text="Builds consumed on daily_builds_reset_at")),
                ("daily_builds_reset_at", models.CharField(blank=True, default="", help_text="Server-local date (YYYY-MM-DD) the counter belongs to", max_length=10)),
                ("file_retention_days", models.PositiveIntegerField(default=3, help_text="Days a build's files stay downloadable")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        help_text="Owner of this wallet",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="wallet",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "User Wallet",
                "verbose_name_plural": "User Wallets",
                "db_table": "quota_user_wallet",
                "ordering": ["user_id"],
            },
        ),
    ]
