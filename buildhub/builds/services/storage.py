"""
Artifact storage on top of the Django storage configured for builds.

Keys follow builds/{build_id}/<artifact-name>. Download links are signed
with TimestampSigner and verified by the file download view, so they expire
without any server-side state.
"""
import logging
from typing import Optional

from django.core import signing
from django.core.files.base import ContentFile
from django.core.files.storage import storages
from django.urls import reverse

from ..conf import get_download_url_ttl, get_public_base_url, get_storage_alias
from ..constants import ICON_FILE_NAME

logger = logging.getLogger(__name__)

DOWNLOAD_SIGNER_SALT = "builds.download"


def get_storage():
    """
    Return the storage backend holding build artifacts.
    """
    return storages[get_storage_alias()]


def build_file_path(build_id: str, file_name: str) -> str:
    """
    Return the storage key for a build artifact: builds/{id}/{file_name}.
    """
    return f"builds/{build_id}/{file_name}"


def icon_file_path(build_id: str) -> str:
    return build_file_path(build_id, ICON_FILE_NAME)


def user_upload_prefix(user_id) -> str:
    """
    Return the storage prefix a user may upload icons under: uploads/{user_id}/.
    """
    return f"uploads/{user_id}/"


def is_user_upload_path(user_id, path: Optional[str]) -> bool:
    """
    Check that `path` is a plain key under the user's upload prefix.
    """
    if not path or user_id is None:
        return False
    if path.startswith("/") or "\\" in path:
        return False
    if any(part in ("", ".", "..") for part in path.split("/")):
        return False
    return path.startswith(user_upload_prefix(user_id))


def upload_file(path: str, data: bytes) -> str:
    """
    Store bytes under `path`, replacing any existing object.

    Returns:
        The storage key the data was written to
    """
    storage = get_storage()
    if storage.exists(path):
        storage.delete(path)
    saved = storage.save(path, ContentFile(data))
    logger.info(f"[storage] uploaded path={saved} size={len(data)}")
    return saved


def download_file(path: str) -> bytes:
    """
    Read a stored object. Raises FileNotFoundError when missing.
    """
    storage = get_storage()
    if not storage.exists(path):
        raise FileNotFoundError(path)
    with storage.open(path, "rb") as fh:
        return fh.read()


def file_exists(path: str) -> bool:
    return bool(path) and get_storage().exists(path)


def delete_file(path: Optional[str]) -> bool:
    """
    Delete a stored object. Missing objects are not an error.

    Returns:
        True if an object was deleted
    """
    if not path:
        return False
    storage = get_storage()
    if not storage.exists(path):
        return False
    storage.delete(path)
    logger.info(f"[storage] deleted path={path}")
    return True


def delete_build_files(build_id: str) -> int:
    """
    Delete every object under builds/{build_id}/.

    Returns:
        Number of files deleted
    """
    storage = get_storage()
    prefix = f"builds/{build_id}"
    try:
        _, files = storage.listdir(prefix)
    except (FileNotFoundError, NotImplementedError):
        return 0
    deleted = 0
    for name in files:
        storage.delete(f"{prefix}/{name}")
        deleted += 1
    if deleted:
        logger.info(f"[storage] deleted {deleted} file(s) for build={build_id}")
    return deleted


def get_temp_download_url(path: str, ttl_seconds: Optional[int] = None) -> str:
    """
    Return a signed, time-limited download URL for a stored object.

    Args:
        path: Storage key
        ttl_seconds: Link lifetime; defaults to BUILD_DOWNLOAD_URL_TTL

    Returns:
        Absolute URL of the signed download endpoint
    """
    ttl = ttl_seconds or get_download_url_ttl()
    signer = signing.TimestampSigner(salt=DOWNLOAD_SIGNER_SALT)
    token = signer.sign_object({"path": path, "ttl": ttl})
    return f"{get_public_base_url()}{reverse('build-file-download')}?token={token}"


def resolve_download_token(token: str) -> Optional[str]:
    """
    Verify a download token and return the storage key it grants.

    Returns:
        The storage key, or None when the token is invalid or expired
    """
    signer = signing.TimestampSigner(salt=DOWNLOAD_SIGNER_SALT)
    try:
        payload = signer.unsign_object(token)
    except signing.BadSignature:
        return None
    ttl = int(payload.get("ttl") or get_download_url_ttl())
    try:
        payload = signer.unsign_object(token, max_age=ttl)
    except signing.SignatureExpired:
        logger.info("[storage] expired download token")
        return None
    except signing.BadSignature:
        return None
    return payload.get("path")
