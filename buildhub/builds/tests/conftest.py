"""
Pytest fixtures for builds tests.
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
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from builds.models import BuildRecord
from builds.services.storage import upload_file
from builds.tests.helpers import ANDROID_TEMPLATE_FILES, make_zip
from quota.models import UserWallet
from quota.services.ledger import get_today_string


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user():
    return User.objects.create_user(
        username="testuser_builds",
        email="builds@example.com",
        password="testpass123",
    )


@pytest.fixture
def other_user():
    return User.objects.create_user(
        username="other_builds",
        email="other@example.com",
        password="testpass123",
    )


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def wallet(user):
    return UserWallet.objects.create(
        user=user,
        plan="Pro",
        daily_builds_limit=10,
        daily_builds_used=0,
        daily_builds_reset_at=get_today_string(),
        file_retention_days=14,
    )


@pytest.fixture
def free_wallet(user):
    return UserWallet.objects.create(
        user=user,
        plan="Free",
        daily_builds_limit=3,
        daily_builds_used=0,
        daily_builds_reset_at=get_today_string(),
        file_retention_days=3,
    )


@pytest.fixture
def make_build(user):
    """
    Factory for BuildRecord rows with sensible defaults.
    """
    def _make_build(**overrides):
        fields = {
            "user": user,
            "platform": "android",
            "app_name": "My App",
            "package_name": "com.example.myapp",
            "url": "https://example.com",
            "status": "pending",
            "progress": 0,
            "expires_at": timezone.now() + timedelta(days=14),
        }
        fields.update(overrides)
        return BuildRecord.objects.create(**fields)
    return _make_build


@pytest.fixture
def android_template():
    data = make_zip(ANDROID_TEMPLATE_FILES)
    upload_file("templates/android.zip", data)
    return data
