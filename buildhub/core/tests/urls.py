"""
Minimal URLconf for tests.
"""
from django.urls import include, path

urlpatterns = [
    path("api/v1/quota/", include("quota.urls")),
    path("api/v1/builds/", include("builds.urls")),
    path("api/v1/shares/", include("shares.urls")),
]
