"""
Helpers for GitHub Actions artifact archives.
"""
import io
import posixpath
import zipfile
from typing import Optional

APK_OUTPUT_DIR = "android/app/build/outputs/apk/normal/{variant}"


def artifact_name(build_id: str, variant: str = "release") -> str:
    """
    Name the workflow uploads the APK under, e.g. app-release-{build_id}.
    """
    return f"app-{variant}-{build_id}"


def apk_storage_name(variant: str = "release") -> str:
    return f"app-{variant}.apk"


def _in_output_dir(name: str, output_dir: str) -> bool:
    directory = posixpath.dirname(name)
    return directory == output_dir or directory.endswith(f"/{output_dir}")


def find_apk_in_zip(data: bytes, variant: str = "release") -> Optional[bytes]:
    """
    Extract the APK from an artifact archive.

    Only .apk files directly inside the flavour output directory count; that
    directory may sit at any depth of the archive. An APK anywhere else is
    ignored.

    Returns:
        APK bytes, or None when the archive holds no matching APK
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile:
        return None

    output_dir = APK_OUTPUT_DIR.format(variant=variant)
    with archive:
        matches = [
            info.filename for info in archive.infolist()
            if not info.is_dir()
            and info.filename.lower().endswith(".apk")
            and _in_output_dir(info.filename, output_dir)
        ]
        if not matches:
            return None
        return archive.read(sorted(matches)[0])
