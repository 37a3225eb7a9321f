"""
Icon intake for builds.

An icon can arrive as a storage key already uploaded by the client, a
remote URL, or inline base64 bytes (legacy). Whatever the source, it ends
up at builds/{id}/icon.png. Icon problems never fail a build.
"""
import base64
import binascii
import logging
import time
from typing import Optional

import requests

from ..conf import (
    ICON_FETCH_RETRY_DELAY,
    ICON_FETCH_TIMEOUTS,
    get_max_image_upload_bytes,
    get_max_image_upload_mb,
    is_icon_upload_enabled,
)
from .storage import download_file, icon_file_path, upload_file

logger = logging.getLogger(__name__)


def validate_icon_size(size: int) -> dict:
    """
    Check an icon size against MAX_IMAGE_UPLOAD_MB.

    Returns:
        {'valid': bool, 'max_size_mb': float, 'file_size_mb': float}
    """
    max_mb = get_max_image_upload_mb()
    return {
        "valid": is_icon_upload_enabled()
        and size <= get_max_image_upload_bytes(),
        "max_size_mb": max_mb,
        "file_size_mb": round(size / (1024 * 1024), 2),
    }


def decode_icon_base64(value: str) -> Optional[bytes]:
    """
    Decode inline icon data, accepting an optional data: URL prefix.
    """
    if not value:
        return None
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("[icons] invalid base64 icon data")
        return None


def fetch_icon_from_url(url: str) -> Optional[bytes]:
    """
    Download an icon with escalating timeouts (30s, 45s, 60s).

    Returns:
        Icon bytes, or None when every attempt failed
    """
    attempts = len(ICON_FETCH_TIMEOUTS)
    for attempt, timeout in enumerate(ICON_FETCH_TIMEOUTS, start=1):
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            return response.content
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"[icons] fetch attempt {attempt}/{attempts} failed "
                f"url={url[:120]}: {e}"
            )
            if attempt < attempts:
                time.sleep(ICON_FETCH_RETRY_DELAY)
    return None


def resolve_icon(build_id: str, icon_path: Optional[str] = None,
                 icon_url: Optional[str] = None,
                 icon_base64: Optional[str] = None) -> Optional[str]:
    """
    Store the build's icon from the first available source.

    Precedence: icon_path, then icon_url, then icon_base64.

    Returns:
        Storage key of the stored icon, or None if no usable icon
    """
    target = icon_file_path(build_id)
    try:
        data = None
        if icon_path:
            if icon_path == target:
                return target
            data = download_file(icon_path)
        elif icon_url:
            data = fetch_icon_from_url(icon_url)
        elif icon_base64:
            data = decode_icon_base64(icon_base64)

        if not data:
            if icon_path or icon_url or icon_base64:
                logger.warning(
                    f"[icons] no icon data obtained build={build_id}, "
                    f"continuing without icon"
                )
            return None

        check = validate_icon_size(len(data))
        if not check["valid"]:
            logger.warning(
                f"[icons] icon too large build={build_id} "
                f"size={check['file_size_mb']}MB max={check['max_size_mb']}MB"
            )
            return None

        return upload_file(target, data)
    except Exception as e:
        logger.warning(
            f"[icons] icon upload failed build={build_id}: {e}, "
            f"continuing without icon"
        )
        return None
