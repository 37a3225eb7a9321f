"""
Exceptions raised inside the build pipeline.
"""
from .constants import BuildErrorType


class BuildError(Exception):
    """
    A build failure with a category. str(error) is the detailed message
    stored on the record.
    """

    def __init__(self, message, error_type=BuildErrorType.UNKNOWN,
                 details=None):
        super().__init__(message)
        self.error_type = error_type
        self.details = details or {}


class ArtifactNotFoundError(BuildError):
    """
    The CI artifact or the APK inside it could not be found.
    """

    def __init__(self, message="APK file not found in artifact"):
        super().__init__(message, BuildErrorType.VALIDATION)


class CIRequestError(Exception):
    """
    Transient failure talking to the CI provider (network, 5xx, auth).
    """
