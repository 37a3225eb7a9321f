"""
Django settings for the build orchestration service.

Settings are split by concern; each submodule reads its own environment
variables.
"""
from .base import *  # noqa: F401,F403
from .celery import *  # noqa: F401,F403
from .storage import *  # noqa: F401,F403
from .builds import *  # noqa: F401,F403
