"""
Shared helpers for builds tests.
"""
import io
import json
import zipfile

from builds.models import BuildRecord


def make_zip(files):
    """
    Build a zip archive from {name: str|bytes}.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def read_zip(data):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


def set_updated_at(build, when):
    """
    Backdate updated_at, which auto_now otherwise overrides on save().
    """
    BuildRecord.objects.filter(pk=build.pk).update(updated_at=when)
    build.refresh_from_db()
    return build


ANDROID_TEMPLATE_FILES = {
    "android-template/app/src/main/assets/appConfig.json": json.dumps({
        "general": {
            "initialUrl": "https://placeholder.example",
            "appName": "Placeholder",
            "androidPackageName": "com.placeholder.app",
        }
    }),
    "android-template/app/src/main/AndroidManifest.xml": (
        '<manifest xmlns:android="http://schemas.android.com/apk/res/android"'
        ' android:versionName="0.0.1" android:versionCode="1"></manifest>'
    ),
    "android-template/build.gradle": "// gradle",
}

APK_BYTES = b"PK-fake-apk-contents"


def make_artifact(build_id=None, variant="release", apk=APK_BYTES):
    """
    Artifact zip as uploaded by the workflow.
    """
    return make_zip({
        f"android/app/build/outputs/apk/normal/{variant}/"
        f"app-normal-{variant}.apk": apk,
        "android/app/build/outputs/apk/normal/output-metadata.json": "{}",
    })
