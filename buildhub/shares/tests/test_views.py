"""
API tests for shares endpoints.
"""
import pytest
from rest_framework.test import APIClient

from shares.models import BuildShare


@pytest.mark.django_db
class TestShareAPI:
    def test_create(self, api_client, make_wallet, completed_build):
        make_wallet("Pro")
        response = api_client.post(
            "/api/v1/shares/",
            {"build_id": completed_build.id, "expire_days": 5},
            format="json",
        )

        assert response.status_code == 200
        share = response.json()["share"]
        assert share["actualExpireDays"] == 5
        assert share["shareType"] == "link"

    def test_create_on_free_plan(
        self, api_client, make_wallet, completed_build
    ):
        make_wallet("Free")
        response = api_client.post(
            "/api/v1/shares/",
            {"build_id": completed_build.id, "expire_days": 5},
            format="json",
        )
        assert response.status_code == 403
        assert response.json() == {
            "success": False, "error": "Sharing not available for Free plan",
        }

    def test_create_invalid_payload(self, api_client):
        response = api_client.post(
            "/api/v1/shares/", {"expire_days": 5}, format="json"
        )
        assert response.status_code == 400

    def test_list_and_delete(self, api_client, make_wallet, completed_build):
        make_wallet("Pro")
        api_client.post(
            "/api/v1/shares/",
            {"build_id": completed_build.id, "expire_days": 5},
            format="json",
        )

        listed = api_client.get(
            "/api/v1/shares/", {"build_id": completed_build.id}
        ).json()["shares"]
        assert len(listed) == 1

        response = api_client.delete(f"/api/v1/shares/?id={listed[0]['id']}")
        assert response.status_code == 200
        assert BuildShare.objects.count() == 0

        response = api_client.delete(f"/api/v1/shares/?id={listed[0]['id']}")
        assert response.status_code == 404

    def test_list_requires_build_id(self, api_client):
        assert api_client.get("/api/v1/shares/").status_code == 400


@pytest.mark.django_db
class TestShareAccessAPI:
    @pytest.fixture
    def share(self, api_client, make_wallet, completed_build):
        make_wallet("Pro")
        response = api_client.post(
            "/api/v1/shares/",
            {"build_id": completed_build.id, "expire_days": 5},
            format="json",
        )
        return response.json()["share"]

    def test_open_without_secret(self, share):
        response = APIClient().get(f"/api/v1/shares/{share['shareCode']}/")
        assert response.status_code == 403
        assert response.json()["needsSecret"] is True

    def test_open_with_secret(self, share):
        response = APIClient().get(
            f"/api/v1/shares/{share['shareCode']}/",
            {"secret": share["secret"]},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["build"]["appName"] == "Shared App"
        assert body["share"]["accessCount"] == 1

    def test_unknown_code(self):
        response = APIClient().get("/api/v1/shares/doesnotexist/")
        assert response.status_code == 404

    def test_download_redirects_to_signed_url(self, share):
        response = APIClient().get(
            f"/api/v1/shares/{share['shareCode']}/download/",
            {"secret": share["secret"]},
        )
        assert response.status_code == 302
        assert response["Location"].startswith(
            "http://testserver/api/v1/builds/files/?token="
        )

    def test_download_needs_secret(self, share):
        response = APIClient().get(
            f"/api/v1/shares/{share['shareCode']}/download/"
        )
        assert response.status_code == 403
