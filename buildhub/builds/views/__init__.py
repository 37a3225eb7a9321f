"""
Views for builds API.
"""
from .builds import BuildDetailAPIView, BuildListAPIView, BuildPollingAPIView
from .ci import GitHubCallbackAPIView, SyncGitHubBuildAPIView
from .files import BuildFileDownloadAPIView
from .submit import BatchBuildAPIView, SubmitBuildAPIView

__all__ = [
    'BatchBuildAPIView',
    'BuildDetailAPIView',
    'BuildFileDownloadAPIView',
    'BuildListAPIView',
    'BuildPollingAPIView',
    'GitHubCallbackAPIView',
    'SubmitBuildAPIView',
    'SyncGitHubBuildAPIView',
]
