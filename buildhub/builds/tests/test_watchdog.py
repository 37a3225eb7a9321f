"""
Tests for the stuck APK build watchdog.
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from builds import tasks
from builds.exceptions import CIRequestError
from builds.models import BuildRecord
from builds.services.github import rate_limiter
from builds.services.watchdog import (
    auto_sync_stuck_builds,
    claim_sync_lock,
    find_stuck_builds,
    release_sync_lock,
    request_user_sweep,
    sync_stuck_build,
    was_recently_synced,
)
from builds.tests.helpers import make_artifact, set_updated_at


@pytest.fixture
def stuck_build(make_build, wallet):
    build = make_build(
        platform="android-apk",
        status="processing",
        progress=50,
        github_run_id="77",
    )
    return set_updated_at(build, timezone.now() - timedelta(minutes=10))


@pytest.mark.unit
@pytest.mark.django_db
class TestFindStuckBuilds:
    def test_selects_old_ci_waiting_builds(self, stuck_build, make_build):
        make_build(
            platform="android-apk", status="processing", progress=50,
            github_run_id="78",
        )
        set_updated_at(
            make_build(platform="android-apk", status="processing",
                       progress=30, github_run_id="79"),
            timezone.now() - timedelta(minutes=10),
        )
        set_updated_at(
            make_build(platform="android-apk", status="processing",
                       progress=50, github_run_id=""),
            timezone.now() - timedelta(minutes=10),
        )
        set_updated_at(
            make_build(platform="android", status="processing",
                       progress=50, github_run_id="80"),
            timezone.now() - timedelta(minutes=10),
        )

        assert [b.id for b in find_stuck_builds()] == [stuck_build.id]

    def test_published_build_excluded(self, stuck_build):
        BuildRecord.objects.filter(pk=stuck_build.pk).update(
            output_file_path="builds/x/app-release.apk"
        )
        assert list(find_stuck_builds()) == []

    def test_scoped_to_user(self, stuck_build, other_user):
        assert list(find_stuck_builds(user_id=other_user.id)) == []
        assert len(find_stuck_builds(user_id=stuck_build.user_id)) == 1


@pytest.mark.unit
@pytest.mark.django_db
class TestSyncLock:
    def test_single_claim(self, stuck_build):
        assert claim_sync_lock(stuck_build.id) is True
        assert claim_sync_lock(stuck_build.id) is False

    def test_stale_claim_taken_over(self, stuck_build):
        now = timezone.now()
        BuildRecord.objects.filter(pk=stuck_build.pk).update(
            syncing_since=now - timedelta(seconds=301)
        )
        assert claim_sync_lock(stuck_build.id, now=now) is True

    def test_release(self, stuck_build):
        claim_sync_lock(stuck_build.id)
        release_sync_lock(stuck_build.id)
        assert claim_sync_lock(stuck_build.id) is True


@pytest.mark.unit
@pytest.mark.django_db
class TestSyncStuckBuild:
    def test_resolved_build_cached(self, stuck_build):
        with patch(
            "builds.services.watchdog.sync_build_with_ci",
            return_value={"success": True, "status": "completed"},
        ) as sync:
            assert sync_stuck_build(stuck_build) == "completed"
            assert sync_stuck_build(stuck_build) == "skipped"

        assert sync.call_count == 1
        assert was_recently_synced(stuck_build.id)
        stuck_build.refresh_from_db()
        assert stuck_build.syncing_since is None

    def test_transient_error_keeps_claim(self, stuck_build):
        with patch(
            "builds.services.watchdog.sync_build_with_ci",
            side_effect=CIRequestError("GitHub API error: 502"),
        ):
            assert sync_stuck_build(stuck_build) == "error"

        stuck_build.refresh_from_db()
        assert stuck_build.syncing_since is not None
        assert stuck_build.status == "processing"
        assert not was_recently_synced(stuck_build.id)
        assert claim_sync_lock(stuck_build.id) is False

    def test_unexpected_error_keeps_claim(self, stuck_build):
        with patch(
            "builds.services.watchdog.sync_build_with_ci",
            side_effect=RuntimeError("boom"),
        ):
            assert sync_stuck_build(stuck_build) == "error"
        stuck_build.refresh_from_db()
        assert stuck_build.syncing_since is not None

    def test_in_progress_releases_claim(self, stuck_build):
        with patch(
            "builds.services.watchdog.sync_build_with_ci",
            return_value={"success": True, "status": "processing"},
        ):
            assert sync_stuck_build(stuck_build) == "in_progress"
        stuck_build.refresh_from_db()
        assert stuck_build.syncing_since is None

    def test_claimed_elsewhere(self, stuck_build):
        claim_sync_lock(stuck_build.id)
        with patch("builds.services.watchdog.sync_build_with_ci") as sync:
            assert sync_stuck_build(stuck_build) == "skipped"
        sync.assert_not_called()


@pytest.mark.unit
@pytest.mark.django_db
class TestAutoSync:
    def test_throttled_sweep_skipped(self, stuck_build):
        with patch(
            "builds.services.watchdog.should_throttle", return_value=True
        ), patch("builds.services.watchdog.sync_build_with_ci") as sync:
            result = auto_sync_stuck_builds()

        assert result["status"] == "skipped"
        assert result["reason"] == "rate_limited"
        assert result["retry_after"] == 0
        sync.assert_not_called()

    def test_summary(self, stuck_build):
        with patch(
            "builds.services.watchdog.sync_build_with_ci",
            return_value={"success": False, "status": "failed"},
        ):
            result = auto_sync_stuck_builds()

        assert result["checked"] == 1
        assert result["failed"] == 1
        assert result["error"] == 0

    def test_task_publishes_stuck_build(self, stuck_build):
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls:
            client = cls.return_value
            client.get_build_status.return_value = {
                "status": "completed", "conclusion": "success", "error": None,
            }
            client.download_artifact.return_value = make_artifact()

            result = tasks.auto_sync_builds(stuck_build.user_id)

        assert result["completed"] == 1
        stuck_build.refresh_from_db()
        assert stuck_build.status == "completed"
        assert stuck_build.output_file_path.endswith("app-release.apk")


@pytest.mark.unit
class TestPollSweepDebounce:
    def test_one_sweep_per_interval(self):
        assert request_user_sweep(1) is True
        assert request_user_sweep(1) is False
        assert request_user_sweep(2) is True

    def test_interval_scales_with_rate_limit_usage(self):
        rate_limiter.update_rate_limit({
            "x-ratelimit-limit": "5000",
            "x-ratelimit-remaining": "100",
            "x-ratelimit-reset": "1700000000",
        })
        with patch("builds.services.watchdog.cache") as cache:
            request_user_sweep(1)
        cache.add.assert_called_once_with(
            "builds:watchdog:poll:1", True, 90
        )


@pytest.mark.unit
@pytest.mark.django_db
class TestUploadFailureRetry:
    def run_sync(self, build, upload_error=None):
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls:
            client = cls.return_value
            client.get_build_status.return_value = {
                "status": "completed", "conclusion": "success", "error": None,
            }
            client.download_artifact.return_value = make_artifact()
            if upload_error is None:
                return sync_stuck_build(build)
            with patch(
                "builds.services.ci_sync.upload_file", side_effect=upload_error
            ):
                return sync_stuck_build(build)

    def test_storage_error_returns_build_to_ci_wait(self, stuck_build):
        assert self.run_sync(stuck_build, OSError("disk full")) == "error"

        stuck_build.refresh_from_db()
        assert stuck_build.status == "processing"
        assert stuck_build.progress == 50
        assert stuck_build.syncing_since is not None

        later = timezone.now() + timedelta(minutes=10)
        assert [b.id for b in find_stuck_builds(now=later)] == [stuck_build.id]
        assert claim_sync_lock(stuck_build.id, now=later) is True

    def test_next_sweep_publishes(self, stuck_build):
        self.run_sync(stuck_build, OSError("disk full"))
        release_sync_lock(stuck_build.id)
        stuck_build.refresh_from_db()

        assert self.run_sync(stuck_build) == "completed"

        stuck_build.refresh_from_db()
        assert stuck_build.status == "completed"
        assert stuck_build.output_file_path.endswith("app-release.apk")
