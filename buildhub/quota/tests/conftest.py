"""
Pytest fixtures for quota tests.
"""
import os
import sys
from pathlib import Path

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.tests.settings")

project_root = Path(__file__).resolve().parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import django
django.setup()

import pytest
from django.contrib.auth.models import User
from rest_framework.test import APIClient

from quota.models import UserWallet
from quota.services.ledger import get_today_string


@pytest.fixture
def user():
    return User.objects.create_user(
        username="testuser_quota",
        email="quota@example.com",
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
        plan="Free",
        daily_builds_limit=3,
        daily_builds_used=0,
        daily_builds_reset_at=get_today_string(),
        file_retention_days=3,
    )
