"""
API tests for builds endpoints.
"""
import base64
from datetime import timedelta
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from builds.exceptions import CIRequestError
from builds.models import BuildRecord
from builds.services.storage import get_temp_download_url, upload_file
from builds.tests.helpers import make_artifact

SUBMIT_PAYLOAD = {
    "url": "https://example.com",
    "app_name": "My App",
    "package_name": "com.example.myapp",
}


@pytest.fixture
def no_dispatch():
    with patch("builds.services.orchestrator.dispatch_build") as dispatch:
        yield dispatch


@pytest.mark.unit
@pytest.mark.django_db
class TestSubmitBuildAPI:
    def test_submit(self, api_client, wallet, no_dispatch):
        response = api_client.post(
            "/api/v1/builds/android/", SUBMIT_PAYLOAD, format="json"
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "pending"
        build = BuildRecord.objects.get(pk=body["buildId"])
        assert build.platform == "android"
        wallet.refresh_from_db()
        assert wallet.daily_builds_used == 1
        no_dispatch.assert_called_once()

    def test_multipart_icon_becomes_inline_data(
        self, api_client, wallet, no_dispatch
    ):
        icon = SimpleUploadedFile("icon.png", b"\x89PNG", "image/png")
        response = api_client.post(
            "/api/v1/builds/windows/",
            {**SUBMIT_PAYLOAD, "icon": icon},
            format="multipart",
        )

        assert response.status_code == 201
        assert no_dispatch.call_args[1]["icon_base64"] == (
            base64.b64encode(b"\x89PNG").decode()
        )

    def test_missing_fields(self, api_client, wallet, no_dispatch):
        response = api_client.post(
            "/api/v1/builds/android/", {"url": "https://x.io"}, format="json"
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_invalid_url(self, api_client, wallet, no_dispatch):
        response = api_client.post(
            "/api/v1/builds/android/",
            {**SUBMIT_PAYLOAD, "url": "not a url"},
            format="json",
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid URL"

    def test_quota_exceeded(self, api_client, wallet, no_dispatch):
        wallet.daily_builds_used = wallet.daily_builds_limit
        wallet.save()

        response = api_client.post(
            "/api/v1/builds/ios/", SUBMIT_PAYLOAD, format="json"
        )

        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "Quota exceeded"
        assert body["remaining"] == 0
        assert BuildRecord.objects.count() == 0

    def test_unknown_platform_is_not_a_submit_route(self, api_client, wallet):
        response = api_client.post(
            "/api/v1/builds/symbian/", SUBMIT_PAYLOAD, format="json"
        )
        assert response.status_code == 405

    def test_requires_authentication(self, wallet):
        response = APIClient().post(
            "/api/v1/builds/android/", SUBMIT_PAYLOAD, format="json"
        )
        assert response.status_code == 403


@pytest.mark.unit
@pytest.mark.django_db
class TestBatchBuildAPI:
    def test_batch(self, api_client, wallet, no_dispatch):
        response = api_client.post(
            "/api/v1/builds/batch/",
            {
                "url": "https://example.com",
                "platforms": [
                    {"platform": "android", "app_name": "My App"},
                    {"platform": "chrome", "app_name": "My App",
                     "description": "Ext"},
                ],
            },
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert len(body["buildIds"]) == 2
        chrome = BuildRecord.objects.get(platform="chrome")
        assert chrome.config == {"description": "Ext"}

    def test_free_plan(self, api_client, free_wallet, no_dispatch):
        response = api_client.post(
            "/api/v1/builds/batch/",
            {"url": "https://example.com",
             "platforms": [{"platform": "android", "app_name": "A"}]},
            format="json",
        )
        assert response.status_code == 403

    def test_empty_platforms(self, api_client, wallet):
        response = api_client.post(
            "/api/v1/builds/batch/",
            {"url": "https://example.com", "platforms": []},
            format="json",
        )
        assert response.status_code == 400


@pytest.mark.unit
@pytest.mark.django_db
class TestBuildListAPI:
    def test_lists_own_builds_with_stats(
        self, api_client, make_build, other_user
    ):
        make_build(status="completed", progress=100,
                   output_file_path="builds/a/android-source.zip")
        make_build(platform="ios", status="failed")
        make_build(id="hidden-source", platform="android-source")
        BuildRecord.objects.create(
            user=other_user, platform="android", app_name="Theirs",
            url="https://x.io", expires_at=timezone.now() + timedelta(days=1),
        )

        response = api_client.get("/api/v1/builds/")

        assert response.status_code == 200
        body = response.json()
        assert len(body["builds"]) == 2
        assert body["stats"]["total"] == 2
        assert body["stats"]["by_status"] == {
            "pending": 0, "processing": 0, "completed": 1, "failed": 1,
        }
        assert body["stats"]["by_platform"] == {"android": 1, "ios": 1}
        completed = [b for b in body["builds"] if b["status"] == "completed"]
        assert completed[0]["download_url"].startswith(
            "http://testserver/api/v1/builds/files/?token="
        )

    def test_expired_builds_hide_links(self, api_client, make_build):
        make_build(
            status="completed",
            progress=100,
            output_file_path="builds/e/android-source.zip",
            expires_at=timezone.now() - timedelta(minutes=5),
        )

        with patch("builds.tasks.purge_build_files.delay"):
            response = api_client.get("/api/v1/builds/")

        build = response.json()["builds"][0]
        assert build["expired"] is True
        assert build["download_url"] is None
        assert build["output_file_path"] is None

    def test_limit(self, api_client, make_build):
        for _ in range(3):
            make_build()
        response = api_client.get("/api/v1/builds/?limit=2")
        assert len(response.json()["builds"]) == 2


@pytest.mark.unit
@pytest.mark.django_db
class TestBuildDetailAPI:
    def test_get(self, api_client, make_build):
        build = make_build()
        response = api_client.get(f"/api/v1/builds/{build.id}/")
        assert response.status_code == 200
        assert response.json()["id"] == build.id

    def test_other_users_build_is_not_found(
        self, api_client, other_user
    ):
        build = BuildRecord.objects.create(
            user=other_user, platform="android", app_name="Theirs",
            url="https://x.io", expires_at=timezone.now() + timedelta(days=1),
        )
        response = api_client.get(f"/api/v1/builds/{build.id}/")
        assert response.status_code == 404

    def test_delete_removes_files_and_record(self, api_client, make_build):
        path = upload_file("builds/d-1/android-source.zip", b"zip")
        build = make_build(id="d-1", status="completed",
                           output_file_path=path)

        response = api_client.delete(f"/api/v1/builds/{build.id}/")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert not BuildRecord.objects.filter(pk="d-1").exists()


@pytest.mark.unit
@pytest.mark.django_db
class TestPollingAPI:
    def test_returns_active_recent_builds(self, api_client, make_build):
        running = make_build(status="processing", progress=40)
        make_build(status="completed", progress=100)
        make_build(created_at=timezone.now() - timedelta(hours=2))

        with patch("builds.tasks.auto_sync_builds.delay") as delay:
            response = api_client.get("/api/v1/builds/polling/")

        builds = response.json()["builds"]
        assert [b["id"] for b in builds] == [running.id]
        assert builds[0]["progress"] == 40
        delay.assert_called_once()

    def test_sweep_queued_once_per_interval(self, api_client):
        with patch("builds.tasks.auto_sync_builds.delay") as delay:
            api_client.get("/api/v1/builds/polling/")
            api_client.get("/api/v1/builds/polling/")

        delay.assert_called_once()


@pytest.mark.unit
@pytest.mark.django_db
class TestSyncGitHubAPI:
    def test_non_apk_rejected(self, api_client, make_build):
        build = make_build()
        response = api_client.post(f"/api/v1/builds/{build.id}/sync-github/")
        assert response.status_code == 400

    def test_sync_result(self, api_client, make_build):
        build = make_build(platform="android-apk", status="processing",
                           progress=50, github_run_id="77")
        with patch(
            "builds.views.ci.sync_build_with_ci",
            return_value={"success": True, "status": "processing",
                          "message": "Build still in progress"},
        ):
            response = api_client.post(
                f"/api/v1/builds/{build.id}/sync-github/"
            )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "status": "processing",
            "message": "Build still in progress",
        }

    def test_transient_error(self, api_client, make_build):
        build = make_build(platform="android-apk", status="processing",
                           progress=50, github_run_id="77")
        with patch(
            "builds.views.ci.sync_build_with_ci",
            side_effect=CIRequestError("GitHub API error: 503"),
        ):
            response = api_client.post(
                f"/api/v1/builds/{build.id}/sync-github/"
            )
        assert response.status_code == 502

    def test_storage_error_after_ci_success(self, api_client, make_build,
                                            wallet):
        build = make_build(platform="android-apk", status="processing",
                           progress=50, github_run_id="77")
        with patch("builds.services.ci_sync.GitHubActionsClient") as cls, \
                patch("builds.services.ci_sync.upload_file",
                      side_effect=OSError("storage unavailable")):
            cls.return_value.get_build_status.return_value = {
                "status": "completed", "conclusion": "success", "error": None,
            }
            cls.return_value.download_artifact.return_value = make_artifact()
            response = api_client.post(
                f"/api/v1/builds/{build.id}/sync-github/"
            )

        assert response.status_code == 502
        assert response.json() == {
            "success": False,
            "status": "processing",
            "error": "storage unavailable",
        }
        build.refresh_from_db()
        assert build.status == "processing"
        assert build.progress == 50

    def test_unexpected_error(self, api_client, make_build):
        build = make_build(platform="android-apk", status="processing",
                           progress=50, github_run_id="77")
        with patch(
            "builds.views.ci.sync_build_with_ci",
            side_effect=RuntimeError("boom"),
        ):
            response = api_client.post(
                f"/api/v1/builds/{build.id}/sync-github/"
            )
        assert response.status_code == 500
        assert response.json()["success"] is False


@pytest.mark.unit
@pytest.mark.django_db
class TestCallbackAPI:
    def url(self, build_id):
        return reverse("build-github-callback", args=[build_id])

    def test_success_without_session(self, make_build):
        build = make_build(platform="android-apk", status="processing",
                           progress=50)
        with patch("builds.tasks.download_ci_artifact.delay") as delay:
            response = APIClient().post(
                self.url(build.id),
                {"status": "success", "run_id": "55"},
                format="json",
            )

        assert response.status_code == 200
        delay.assert_called_once_with(build.id, "55")

    def test_unknown_build(self):
        response = APIClient().post(
            self.url("nope"), {"status": "success"}, format="json"
        )
        assert response.status_code == 404

    def test_invalid_payload(self, make_build):
        build = make_build(platform="android-apk")
        response = APIClient().post(self.url(build.id), {}, format="json")
        assert response.status_code == 400

    def test_token_required_when_configured(self, settings, make_build):
        settings.GITHUB_CALLBACK_TOKEN = "s3cret"
        build = make_build(platform="android-apk", status="processing")

        rejected = APIClient().post(
            self.url(build.id), {"status": "failure"}, format="json"
        )
        accepted = APIClient().post(
            self.url(build.id),
            {"status": "failure"},
            format="json",
            HTTP_X_BUILD_CALLBACK_TOKEN="s3cret",
        )

        assert rejected.status_code == 403
        assert accepted.status_code == 200
        build.refresh_from_db()
        assert build.status == "failed"


@pytest.mark.unit
@pytest.mark.django_db
class TestFileDownloadAPI:
    def test_download(self):
        path = upload_file("builds/f-1/app-release.apk", b"apk-bytes")
        url = get_temp_download_url(path)
        token = parse_qs(urlparse(url).query)["token"][0]

        response = APIClient().get("/api/v1/builds/files/", {"token": token})

        assert response.status_code == 200
        assert b"".join(response.streaming_content) == b"apk-bytes"
        assert "app-release.apk" in response["Content-Disposition"]

    def test_invalid_token(self):
        response = APIClient().get("/api/v1/builds/files/", {"token": "bad"})
        assert response.status_code == 403

    def test_missing_file(self):
        url = get_temp_download_url("builds/gone/app.zip")
        token = parse_qs(urlparse(url).query)["token"][0]
        response = APIClient().get("/api/v1/builds/files/", {"token": token})
        assert response.status_code == 404
