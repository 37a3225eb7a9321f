"""
Shares app configuration.
"""
from django.conf import settings


def get_share_page_base_url():
    """
    Base URL of the public share page; links are {base}/share/{code}.
    """
    base = getattr(settings, "SHARE_PAGE_BASE_URL", "") or getattr(
        settings, "BUILD_PUBLIC_BASE_URL", "http://localhost:8000"
    )
    return base.rstrip("/")
