"""
URL configuration for quota API.
"""
from django.urls import path

from .views import QuotaCheckAPIView, WalletAPIView

urlpatterns = [
    path("wallet/", WalletAPIView.as_view(), name="quota-wallet"),
    path("check/", QuotaCheckAPIView.as_view(), name="quota-check"),
]
