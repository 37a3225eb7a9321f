"""
GitHub Actions client for the remote APK build.

Wraps the three calls the pipeline needs: dispatching the build workflow,
reading a run's status, and downloading a run's artifact. Transport errors
surface as CIRequestError so callers can tell them apart from a failed
build.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from ...conf import get_github_config
from ...exceptions import CIRequestError
from ...utils.logging import mask_sensitive_config
from .rate_limiter import is_near_limit, update_rate_limit

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
CONFIG_MISSING_ERROR = (
    "GitHub configuration missing (GITHUB_TOKEN, GITHUB_OWNER, GITHUB_REPO)"
)


class GitHubActionsClient:
    """
    Client for the build-android-apk workflow of one repository.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else get_github_config()
        self.api_base = self.config.get(
            "api_base", "https://api.github.com"
        ).rstrip("/")
        self.owner = self.config.get("owner", "")
        self.repo = self.config.get("repo", "")
        self.workflow_file = self.config.get(
            "workflow_file", "build-android-apk.yml"
        )
        self.ref = self.config.get("ref", "master")
        self.timeout = self.config.get("timeout", 30)
        self.download_timeout = self.config.get("download_timeout", 120)
        self.dispatch_lookup_delay = self.config.get(
            "dispatch_lookup_delay", 2
        )

    def is_configured(self) -> bool:
        return bool(self.config.get("token") and self.owner and self.repo)

    @property
    def repo_url(self) -> str:
        return f"{self.api_base}/repos/{self.owner}/{self.repo}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.get('token', '')}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _request(self, method: str, url: str, timeout=None, **kwargs):
        """
        Send a request, record rate limit headers and raise on HTTP errors.

        Raises:
            CIRequestError: On network errors and non-2xx responses
        """
        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(),
                timeout=timeout or self.timeout,
                **kwargs,
            )
            update_rate_limit(response.headers)
            response.raise_for_status()
            return response
        except requests.exceptions.RequestException as e:
            logger.error(
                f"[github] {method} {url} failed: {e} "
                f"(config={mask_sensitive_config(self.config)})"
            )
            raise CIRequestError(f"GitHub API error: {e}") from e

    def trigger_build(
        self,
        build_id: str,
        source_url: str,
        callback_url: str = "",
    ) -> Dict[str, Any]:
        """
        Dispatch the APK workflow for a build.

        Args:
            build_id: Id of the android-apk build record
            source_url: Download URL of the generated Android source zip
            callback_url: URL the workflow reports its result to

        Returns:
            {success: bool, run_id: str|None, error: str|None}.
            run_id is None when the dispatch succeeded but the run could
            not be looked up yet; the watchdog recovers it later.
        """
        if not self.is_configured():
            return {"success": False, "run_id": None,
                    "error": CONFIG_MISSING_ERROR}

        try:
            self._request(
                "POST",
                f"{self.repo_url}/actions/workflows/"
                f"{self.workflow_file}/dispatches",
                json={
                    "ref": self.ref,
                    "inputs": {
                        "build_id": build_id,
                        "source_url": source_url,
                        "callback_url": callback_url or "",
                    },
                },
            )
        except CIRequestError as e:
            return {"success": False, "run_id": None, "error": str(e)}

        logger.info(f"[github] workflow dispatched build={build_id}")

        if self.dispatch_lookup_delay:
            time.sleep(self.dispatch_lookup_delay)

        run_id = None
        try:
            runs = self.list_recent_runs(per_page=1)
            if runs:
                run_id = str(runs[0]["id"])
                logger.info(f"[github] build={build_id} run_id={run_id}")
        except CIRequestError as e:
            logger.warning(
                f"[github] run id lookup failed build={build_id}: {e}"
            )
        return {"success": True, "run_id": run_id, "error": None}

    def get_build_status(self, run_id: str) -> Dict[str, Any]:
        """
        Read a workflow run's status.

        Returns:
            {status, conclusion, error}. A missing configuration or an API
            error is reported as a completed, failed run.
        """
        if not self.is_configured():
            return {"status": "completed", "conclusion": "failure",
                    "error": "GitHub configuration missing"}

        if is_near_limit():
            logger.warning("[github] near rate limit, reduce polling")

        try:
            response = self._request(
                "GET", f"{self.repo_url}/actions/runs/{run_id}"
            )
        except CIRequestError as e:
            return {"status": "completed", "conclusion": "failure",
                    "error": str(e)}

        data = response.json()
        return {
            "status": data.get("status"),
            "conclusion": data.get("conclusion"),
            "error": None,
        }

    def list_recent_runs(self, per_page: int = 10) -> List[Dict[str, Any]]:
        """
        Most recent runs of the build workflow, newest first.

        Raises:
            CIRequestError: On API errors
        """
        response = self._request(
            "GET",
            f"{self.repo_url}/actions/workflows/{self.workflow_file}/runs",
            params={"per_page": per_page},
        )
        return response.json().get("workflow_runs") or []

    def find_artifact(
        self, run_id: str, name: str
    ) -> Optional[Dict[str, Any]]:
        response = self._request(
            "GET", f"{self.repo_url}/actions/runs/{run_id}/artifacts"
        )
        for artifact in response.json().get("artifacts") or []:
            if artifact.get("name") == name:
                return artifact
        return None

    def download_artifact(self, run_id: str, name: str) -> Optional[bytes]:
        """
        Download a run artifact archive by name.

        Returns:
            Zip archive bytes, or None if the run has no artifact of that
            name

        Raises:
            CIRequestError: On API or transfer errors
        """
        if not self.is_configured():
            raise CIRequestError(CONFIG_MISSING_ERROR)

        artifact = self.find_artifact(run_id, name)
        if not artifact:
            logger.warning(f"[github] artifact={name} not found run_id={run_id}")
            return None

        size_mb = (artifact.get("size_in_bytes") or 0) / 1024 / 1024
        logger.info(
            f"[github] downloading artifact={name} run_id={run_id} "
            f"size={size_mb:.2f}MB"
        )
        response = self._request(
            "GET",
            artifact["archive_download_url"],
            timeout=self.download_timeout,
        )
        return response.content
