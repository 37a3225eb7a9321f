"""
Stage 2 of the APK build: bring a CI-compiled APK back into storage.

Three entry points converge here: the workflow's own callback, the manual
sync endpoint and the watchdog. Every path checks whether the final APK is
already stored before touching the network, so duplicate deliveries and
overlapping syncs are harmless.

Transient CI errors propagate as CIRequestError and leave the record
untouched; only an explicit failed conclusion or an unusable artifact
fails the build.
"""
import logging
from typing import Any, Dict, Optional

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..constants import CI_WAITING_PROGRESS, BuildStatus
from ..exceptions import ArtifactNotFoundError, CIRequestError
from ..models import BuildRecord
from .github import (
    GitHubActionsClient,
    apk_storage_name,
    artifact_name,
    find_apk_in_zip,
)
from .orchestrator import complete_build, fail_build, update_progress
from .storage import (
    build_file_path,
    delete_build_files,
    get_temp_download_url,
    upload_file,
)

logger = logging.getLogger(__name__)

CI_FAILED_MESSAGE = "GitHub Actions build failed"
CALLBACK_FAILED_MESSAGE = (
    "GitHub Actions build failed. Check the workflow logs for details."
)
DEFAULT_VARIANT = "release"
RECOVERY_RUN_COUNT = 10


def cleanup_intermediate(build_id: str) -> bool:
    """
    Delete the <id>-source record and its stored files. Never raises.
    """
    source_id = f"{build_id}-source"
    try:
        delete_build_files(source_id)
        BuildRecord.objects.filter(pk=source_id).delete()
    except Exception as e:
        logger.warning(
            f"[ci_sync] intermediate cleanup failed build={build_id}: {e}"
        )
        return False
    logger.info(f"[ci_sync] intermediate cleaned build={build_id}")
    return True


def _already_published(build: BuildRecord) -> Dict[str, Any]:
    return {
        "success": True,
        "status": build.status,
        "message": "APK already uploaded",
        "download_url": get_temp_download_url(build.output_file_path),
    }


def recover_run_id(
    build: BuildRecord, client: Optional[GitHubActionsClient] = None
) -> Optional[str]:
    """
    Find the CI run of a build that lost its run id.

    A run whose title carries the build id (the workflow's run-name) is
    an exact match. Otherwise the newest completed, successful run started
    after the build was created is taken; with concurrent APK builds that
    guess can pick another build's run.

    Raises:
        CIRequestError: If the runs cannot be listed
    """
    client = client or GitHubActionsClient()
    runs = client.list_recent_runs(per_page=RECOVERY_RUN_COUNT)

    match = None
    for run in runs:
        title = f"{run.get('display_title') or ''} {run.get('name') or ''}"
        if build.id in title:
            match = run
            break

    if match is None:
        for run in runs:
            started = parse_datetime(run.get("created_at") or "")
            if started and started < build.created_at:
                continue
            if (
                run.get("status") == "completed"
                and run.get("conclusion") == "success"
            ):
                match = run
                break

    if match is None:
        logger.info(f"[ci_sync] no run recovered build={build.id}")
        return None

    run_id = str(match["id"])
    BuildRecord.objects.filter(pk=build.pk).update(github_run_id=run_id)
    build.github_run_id = run_id
    logger.info(f"[ci_sync] recovered run_id={run_id} build={build.id}")
    return run_id


def _reset_to_ci_waiting(build_id: str) -> None:
    BuildRecord.objects.filter(
        pk=build_id,
        status=BuildStatus.PROCESSING,
        progress__gt=CI_WAITING_PROGRESS,
    ).update(progress=CI_WAITING_PROGRESS, updated_at=timezone.now())
    logger.warning(
        f"[ci_sync] publish interrupted, back to CI wait build={build_id}"
    )


def publish_apk(
    build: BuildRecord,
    run_id: str,
    variant: str = DEFAULT_VARIANT,
    client: Optional[GitHubActionsClient] = None,
) -> Dict[str, Any]:
    """
    Download a run's artifact, extract the APK, store it and complete the
    build.

    Raises:
        ArtifactNotFoundError: If the artifact or the APK inside is missing
        CIRequestError: On transient CI errors
        OSError: If storing the APK fails; progress is set back to the CI
            waiting stage so the watchdog picks the build up again
    """
    if build.has_final_apk:
        return _already_published(build)

    client = client or GitHubActionsClient()
    name = artifact_name(build.id, variant)
    data = client.download_artifact(run_id, name)
    if data is None:
        raise ArtifactNotFoundError(f"Artifact {name} not found")

    apk = find_apk_in_zip(data, variant)
    if apk is None:
        raise ArtifactNotFoundError()

    update_progress(build.id, build.platform, "uploading")
    try:
        path = upload_file(
            build_file_path(build.id, apk_storage_name(variant)), apk
        )
        complete_build(build.id, path, len(apk))
    except Exception:
        _reset_to_ci_waiting(build.id)
        raise
    cleanup_intermediate(build.id)

    build.refresh_from_db()
    return {
        "success": build.status == BuildStatus.COMPLETED,
        "status": build.status,
        "download_url": build.download_url,
    }


def _fail_with_cleanup(build: BuildRecord, message: str) -> Dict[str, Any]:
    fail_build(build.id, message)
    cleanup_intermediate(build.id)
    return {"success": False, "status": BuildStatus.FAILED, "error": message}


def sync_build_with_ci(
    build: BuildRecord,
    variant: str = DEFAULT_VARIANT,
    client: Optional[GitHubActionsClient] = None,
) -> Dict[str, Any]:
    """
    Reconcile an APK build with its CI run.

    Returns:
        {success, status, message?, download_url?, error?}

    Raises:
        CIRequestError: On transient CI errors; the record is unchanged
    """
    if build.has_final_apk:
        return _already_published(build)
    if build.is_terminal:
        return {
            "success": build.status == BuildStatus.COMPLETED,
            "status": build.status,
            "error": build.error_message,
        }

    client = client or GitHubActionsClient()
    run_id = build.github_run_id or recover_run_id(build, client)
    if not run_id:
        return {
            "success": False,
            "status": build.status,
            "error": "No GitHub Actions run found for this build",
        }

    run = client.get_build_status(run_id)
    if run.get("error"):
        raise CIRequestError(run["error"])

    if run.get("status") != "completed":
        return {
            "success": True,
            "status": build.status,
            "message": "Build still in progress",
            "github_status": run.get("status"),
        }

    if run.get("conclusion") != "success":
        logger.warning(
            f"[ci_sync] run failed build={build.id} run_id={run_id} "
            f"conclusion={run.get('conclusion')}"
        )
        return _fail_with_cleanup(build, CI_FAILED_MESSAGE)

    try:
        return publish_apk(build, run_id, variant, client)
    except ArtifactNotFoundError as e:
        return _fail_with_cleanup(build, str(e))


def publish_from_callback(build_id: str, run_id: Optional[str] = None,
                          variant: str = DEFAULT_VARIANT) -> Dict[str, Any]:
    """
    Publish the APK of a run the workflow reported as successful.

    Raises:
        CIRequestError: On transient CI errors
    """
    build = BuildRecord.objects.filter(pk=build_id).first()
    if build is None:
        return {"success": False, "error": "Build not found"}
    if build.has_final_apk:
        return _already_published(build)
    if build.is_terminal:
        return {"success": False, "status": build.status,
                "error": build.error_message}

    run_id = run_id or build.github_run_id
    if not run_id:
        return {"success": False, "status": build.status,
                "error": "No GitHub Actions run id"}
    try:
        return publish_apk(build, run_id, variant)
    except ArtifactNotFoundError as e:
        return _fail_with_cleanup(build, str(e))


def handle_ci_callback(
    build_id: str,
    status: str,
    run_id: Optional[str] = None,
    artifact_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Apply a completion notification pushed by the workflow.

    success stores the run linkage and queues the artifact download; any
    other status fails the build. A callback for a build that already has
    its APK changes nothing.

    Returns:
        {success, message} or {success: False, error, status_code}
    """
    build = BuildRecord.objects.filter(pk=build_id).first()
    if build is None:
        return {"success": False, "error": "Build not found",
                "status_code": 404}

    if build.has_final_apk:
        logger.info(f"[ci_sync] duplicate callback ignored build={build_id}")
        return {"success": True, "message": "APK already uploaded"}

    if status != "success":
        _fail_with_cleanup(build, CALLBACK_FAILED_MESSAGE)
        return {"success": True, "message": "Build failure recorded"}

    updates = {"updated_at": timezone.now()}
    if run_id:
        updates["github_run_id"] = str(run_id)
    if artifact_url:
        updates["github_artifact_url"] = artifact_url
    BuildRecord.objects.filter(pk=build.pk).update(**updates)

    from ..tasks import download_ci_artifact

    download_ci_artifact.delay(build.id, str(run_id) if run_id else None)
    logger.info(
        f"[ci_sync] callback accepted build={build_id} run_id={run_id}"
    )
    return {"success": True, "message": "Artifact download started"}
