"""
Tests for APK stage 2: CI sync, callbacks and artifact publishing.
"""
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from django.utils import timezone

from builds import tasks
from builds.exceptions import CIRequestError
from builds.models import BuildRecord
from builds.services.ci_sync import (
    CALLBACK_FAILED_MESSAGE,
    CI_FAILED_MESSAGE,
    cleanup_intermediate,
    handle_ci_callback,
    publish_from_callback,
    recover_run_id,
    sync_build_with_ci,
)
from builds.services.storage import download_file, upload_file
from builds.tests.helpers import APK_BYTES, make_artifact, make_zip
from core.task_lock import acquire_task_lock


@pytest.fixture
def used_wallet(wallet):
    wallet.daily_builds_used = 1
    wallet.save()
    return wallet


@pytest.fixture
def apk_build(make_build, used_wallet):
    return make_build(
        platform="android-apk",
        status="processing",
        progress=50,
        github_run_id="77",
    )


@pytest.fixture
def source_build(make_build, apk_build):
    path = upload_file(
        f"builds/{apk_build.id}-source/android-source.zip", b"zip"
    )
    return make_build(
        id=f"{apk_build.id}-source",
        platform="android-source",
        status="completed",
        progress=100,
        output_file_path=path,
    )


def ci_client(status="completed", conclusion="success", artifact=None):
    client = MagicMock()
    client.get_build_status.return_value = {
        "status": status, "conclusion": conclusion, "error": None,
    }
    client.download_artifact.return_value = artifact
    return client


@pytest.mark.unit
@pytest.mark.django_db
class TestSyncBuildWithCI:
    def test_already_published_makes_no_ci_calls(self, make_build):
        build = make_build(
            platform="android-apk",
            status="completed",
            progress=100,
            output_file_path="builds/done/app-release.apk",
        )
        client = ci_client()

        result = sync_build_with_ci(build, client=client)

        assert result["success"] is True
        assert result["message"] == "APK already uploaded"
        client.get_build_status.assert_not_called()
        client.download_artifact.assert_not_called()

    def test_run_in_progress(self, apk_build):
        client = ci_client(status="in_progress", conclusion=None)

        result = sync_build_with_ci(apk_build, client=client)

        assert result["success"] is True
        assert result["message"] == "Build still in progress"
        client.get_build_status.assert_called_once_with("77")
        apk_build.refresh_from_db()
        assert apk_build.status == "processing"

    def test_run_failed(self, apk_build, source_build, used_wallet):
        result = sync_build_with_ci(
            apk_build, client=ci_client(conclusion="failure")
        )

        assert result == {
            "success": False, "status": "failed", "error": CI_FAILED_MESSAGE,
        }
        apk_build.refresh_from_db()
        assert apk_build.status == "failed"
        assert apk_build.error_message == CI_FAILED_MESSAGE
        assert apk_build.quota_refunded is True
        used_wallet.refresh_from_db()
        assert used_wallet.daily_builds_used == 0
        assert not BuildRecord.objects.filter(pk=source_build.id).exists()

    def test_run_succeeded_publishes_apk(self, apk_build, source_build):
        client = ci_client(artifact=make_artifact())

        result = sync_build_with_ci(apk_build, client=client)

        assert result["success"] is True
        assert result["status"] == "completed"
        client.download_artifact.assert_called_once_with(
            "77", f"app-release-{apk_build.id}"
        )
        apk_build.refresh_from_db()
        assert apk_build.status == "completed"
        assert apk_build.progress == 100
        assert apk_build.output_file_path == (
            f"builds/{apk_build.id}/app-release.apk"
        )
        assert apk_build.file_size == len(APK_BYTES)
        assert download_file(apk_build.output_file_path) == APK_BYTES
        assert not BuildRecord.objects.filter(pk=source_build.id).exists()

    def test_artifact_without_apk(self, apk_build, used_wallet):
        client = ci_client(artifact=make_zip({
            "logs.txt": "build ok",
            "some/other/dir/app.apk": b"stray",
        }))

        result = sync_build_with_ci(apk_build, client=client)

        assert result["success"] is False
        apk_build.refresh_from_db()
        assert apk_build.status == "failed"
        assert apk_build.error_message == "APK file not found in artifact"
        used_wallet.refresh_from_db()
        assert used_wallet.daily_builds_used == 0

    def test_missing_artifact(self, apk_build):
        result = sync_build_with_ci(apk_build, client=ci_client(artifact=None))

        assert result["success"] is False
        apk_build.refresh_from_db()
        assert apk_build.status == "failed"
        assert f"app-release-{apk_build.id}" in apk_build.error_message

    def test_transient_error_leaves_record(self, apk_build):
        client = MagicMock()
        client.get_build_status.return_value = {
            "status": "completed", "conclusion": "failure",
            "error": "GitHub API error: 502",
        }

        with pytest.raises(CIRequestError):
            sync_build_with_ci(apk_build, client=client)

        apk_build.refresh_from_db()
        assert apk_build.status == "processing"
        assert apk_build.quota_refunded is False

    def test_terminal_build_untouched(self, make_build):
        build = make_build(
            platform="android-apk", status="failed", error_message="boom"
        )
        client = ci_client()

        result = sync_build_with_ci(build, client=client)

        assert result == {"success": False, "status": "failed",
                          "error": "boom"}
        client.get_build_status.assert_not_called()

    def test_no_run_found(self, apk_build):
        BuildRecord.objects.filter(pk=apk_build.pk).update(github_run_id=None)
        apk_build.refresh_from_db()
        client = ci_client()
        client.list_recent_runs.return_value = []

        result = sync_build_with_ci(apk_build, client=client)

        assert result["success"] is False
        assert "No GitHub Actions run" in result["error"]
        client.get_build_status.assert_not_called()


@pytest.mark.unit
@pytest.mark.django_db
class TestRecoverRunId:
    def test_title_match_wins(self, apk_build):
        client = MagicMock()
        client.list_recent_runs.return_value = [
            {"id": 1, "display_title": "unrelated",
             "status": "completed", "conclusion": "success"},
            {"id": 2, "display_title": f"Build APK {apk_build.id}",
             "status": "in_progress", "conclusion": None},
        ]

        assert recover_run_id(apk_build, client) == "2"
        apk_build.refresh_from_db()
        assert apk_build.github_run_id == "2"

    def test_newest_successful_run_after_creation(self, apk_build):
        created = apk_build.created_at
        client = MagicMock()
        client.list_recent_runs.return_value = [
            {"id": 6, "created_at": (created + timedelta(minutes=2)).isoformat(),
             "status": "in_progress", "conclusion": None},
            {"id": 7, "created_at": (created + timedelta(minutes=1)).isoformat(),
             "status": "completed", "conclusion": "success"},
            {"id": 5, "created_at": (created - timedelta(hours=1)).isoformat(),
             "status": "completed", "conclusion": "success"},
        ]

        assert recover_run_id(apk_build, client) == "7"

    def test_nothing_recovered(self, apk_build):
        client = MagicMock()
        client.list_recent_runs.return_value = [
            {"id": 5,
             "created_at": (timezone.now() - timedelta(days=1)).isoformat(),
             "status": "completed", "conclusion": "success"},
        ]
        assert recover_run_id(apk_build, client) is None


@pytest.mark.unit
@pytest.mark.django_db
class TestCICallback:
    def test_unknown_build(self):
        result = handle_ci_callback("missing", "success", "1")
        assert result["status_code"] == 404

    def test_duplicate_callback(self, make_build):
        build = make_build(
            platform="android-apk",
            status="completed",
            progress=100,
            output_file_path="builds/done/app-release.apk",
        )
        with patch("builds.tasks.download_ci_artifact.delay") as delay:
            result = handle_ci_callback(build.id, "success", "88")

        assert result == {"success": True, "message": "APK already uploaded"}
        delay.assert_not_called()
        build.refresh_from_db()
        assert build.github_run_id is None

    def test_failure_callback(self, apk_build, source_build, used_wallet):
        result = handle_ci_callback(apk_build.id, "failure", "88")

        assert result["success"] is True
        apk_build.refresh_from_db()
        assert apk_build.status == "failed"
        assert apk_build.error_message == CALLBACK_FAILED_MESSAGE
        used_wallet.refresh_from_db()
        assert used_wallet.daily_builds_used == 0
        assert not BuildRecord.objects.filter(pk=source_build.id).exists()

    def test_success_callback_queues_download(self, apk_build):
        with patch("builds.tasks.download_ci_artifact.delay") as delay:
            result = handle_ci_callback(
                apk_build.id, "success", 88, "https://api/artifacts/1"
            )

        assert result["success"] is True
        delay.assert_called_once_with(apk_build.id, "88")
        apk_build.refresh_from_db()
        assert apk_build.github_run_id == "88"
        assert apk_build.github_artifact_url == "https://api/artifacts/1"
        assert apk_build.status == "processing"


@pytest.mark.unit
@pytest.mark.django_db
class TestPublishFromCallback:
    def test_publishes_without_status_check(self, apk_build):
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls:
            cls.return_value.download_artifact.return_value = make_artifact()
            result = publish_from_callback(apk_build.id, "91")

        assert result["success"] is True
        cls.return_value.get_build_status.assert_not_called()
        cls.return_value.download_artifact.assert_called_once_with(
            "91", f"app-release-{apk_build.id}"
        )
        apk_build.refresh_from_db()
        assert apk_build.status == "completed"

    def test_unknown_build(self):
        assert publish_from_callback("missing")["success"] is False

    def test_download_task_runs_publish(self, apk_build):
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls:
            cls.return_value.download_artifact.return_value = make_artifact()
            result = tasks.download_ci_artifact(apk_build.id, "91")

        assert result["success"] is True
        apk_build.refresh_from_db()
        assert apk_build.has_final_apk

    def test_download_task_is_single_flight(self, apk_build):
        acquire_task_lock(f"download_ci_artifact_{apk_build.id}", 60)
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls:
            result = tasks.download_ci_artifact(apk_build.id, "91")

        assert result["status"] == "skipped"
        cls.assert_not_called()

    def test_download_task_transient_error_keeps_build(self, apk_build):
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls:
            cls.return_value.download_artifact.side_effect = CIRequestError(
                "GitHub API error: timeout"
            )
            result = tasks.download_ci_artifact(apk_build.id, "91")

        assert result["success"] is False
        apk_build.refresh_from_db()
        assert apk_build.status == "processing"

    def test_download_task_storage_error_keeps_build(self, apk_build):
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls, \
                patch("builds.services.ci_sync.upload_file",
                      side_effect=OSError("disk full")):
            cls.return_value.download_artifact.return_value = make_artifact()
            result = tasks.download_ci_artifact(apk_build.id, "91")

        assert result == {
            "success": False, "build_id": apk_build.id, "error": "disk full",
        }
        apk_build.refresh_from_db()
        assert apk_build.status == "processing"
        assert apk_build.progress == 50


@pytest.mark.unit
@pytest.mark.django_db
def test_cleanup_intermediate(source_build):
    build_id = source_build.id[: -len("-source")]
    assert cleanup_intermediate(build_id) is True
    assert not BuildRecord.objects.filter(pk=source_build.id).exists()
    assert cleanup_intermediate(build_id) is True
