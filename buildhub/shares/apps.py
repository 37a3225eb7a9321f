"""
App configuration for shares.
"""
from django.apps import AppConfig


class SharesConfig(AppConfig):
    """
    Configuration for shares app.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "shares"
    verbose_name = "Build Shares"
