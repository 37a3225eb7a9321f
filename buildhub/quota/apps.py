"""
App configuration for quota.
"""
from django.apps import AppConfig


class QuotaConfig(AppConfig):
    """
    Configuration for quota app.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "quota"
    verbose_name = "Build Quota"
