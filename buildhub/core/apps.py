"""
App configuration for core.
"""
from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Configuration for core app (management commands, periodic registry).
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Core"
