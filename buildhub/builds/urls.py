"""
URL configuration for builds API.
"""
from django.urls import path, register_converter

from .constants import Platform
from .views import (
    BatchBuildAPIView,
    BuildDetailAPIView,
    BuildFileDownloadAPIView,
    BuildListAPIView,
    BuildPollingAPIView,
    GitHubCallbackAPIView,
    SubmitBuildAPIView,
    SyncGitHubBuildAPIView,
)


class PlatformConverter:
    """
    Matches only submittable platform names, so build ids fall through to
    the detail routes.
    """
    regex = "|".join(
        sorted(Platform.get_submittable_platforms(), key=len, reverse=True)
    )

    def to_python(self, value):
        return value

    def to_url(self, value):
        return value


register_converter(PlatformConverter, "platform")

urlpatterns = [
    path("", BuildListAPIView.as_view(), name="build-list"),
    path("batch/", BatchBuildAPIView.as_view(), name="build-batch"),
    path("polling/", BuildPollingAPIView.as_view(), name="build-polling"),
    path(
        "files/",
        BuildFileDownloadAPIView.as_view(),
        name="build-file-download",
    ),
    path(
        "<platform:platform>/",
        SubmitBuildAPIView.as_view(),
        name="build-submit",
    ),
    path(
        "<str:build_id>/",
        BuildDetailAPIView.as_view(),
        name="build-detail",
    ),
    path(
        "<str:build_id>/sync-github/",
        SyncGitHubBuildAPIView.as_view(),
        name="build-sync-github",
    ),
    path(
        "<str:build_id>/github-callback/",
        GitHubCallbackAPIView.as_view(),
        name="build-github-callback",
    ),
]
