"""
App configuration for builds.
"""
from django.apps import AppConfig


class BuildsConfig(AppConfig):
    """
    Configuration for builds app.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "builds"
    verbose_name = "Builds"

    def ready(self):
        """
        Connect receivers for quota plan changes.
        """
        import builds.signals  # noqa: F401
