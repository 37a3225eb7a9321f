"""
URL configuration for shares API.
"""
from django.urls import path

from .views import ShareAccessAPIView, ShareAPIView, ShareDownloadAPIView

urlpatterns = [
    path("", ShareAPIView.as_view(), name="share-list"),
    path("<str:code>/", ShareAccessAPIView.as_view(), name="share-access"),
    path(
        "<str:code>/download/",
        ShareDownloadAPIView.as_view(),
        name="share-download",
    ),
]
