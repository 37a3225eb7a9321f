"""
Pytest fixtures for shares tests.
"""
import os
import sys
from datetime import timedelta
from pathlib import Path

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.tests.settings")

project_root = Path(__file__).resolve().parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import django
django.setup()

import pytest
from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework.test import APIClient

from builds.models import BuildRecord
from quota.models import UserWallet
from quota.services.ledger import get_today_string


@pytest.fixture
def user():
    return User.objects.create_user(
        username="testuser_shares",
        email="shares@example.com",
        password="testpass123",
    )


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def make_wallet(user):
    def _make_wallet(plan):
        return UserWallet.objects.create(
            user=user,
            plan=plan,
            daily_builds_limit=10,
            daily_builds_reset_at=get_today_string(),
            file_retention_days=14,
        )
    return _make_wallet


@pytest.fixture
def completed_build(user):
    return BuildRecord.objects.create(
        user=user,
        platform="android-apk",
        app_name="Shared App",
        package_name="com.example.shared",
        version_name="1.2.0",
        url="https://example.com",
        status="completed",
        progress=100,
        output_file_path="builds/shared/app-release.apk",
        file_size=1024,
        expires_at=timezone.now() + timedelta(days=14),
    )
