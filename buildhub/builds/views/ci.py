"""
Remote CI views: manual resync and the workflow callback.
"""
import hmac
import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..conf import get_callback_token
from ..constants import Platform
from ..exceptions import CIRequestError
from ..serializers import CICallbackSerializer
from ..services import handle_ci_callback, sync_build_with_ci
from .builds import user_builds

logger = logging.getLogger(__name__)

CALLBACK_TOKEN_HEADER = "HTTP_X_BUILD_CALLBACK_TOKEN"


class SyncGitHubBuildAPIView(APIView):
    """
    Reconcile an APK build with its GitHub Actions run on demand.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["builds"],
        summary="Sync APK build with GitHub Actions",
        request=None,
        responses={200: {"type": "object"}},
    )
    def post(self, request, build_id):
        build = user_builds(request.user).filter(pk=build_id).first()
        if build is None:
            return Response(
                {"success": False, "error": "Build not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        if build.platform != Platform.ANDROID_APK:
            return Response(
                {"success": False,
                 "error": "Only android-apk builds run on GitHub Actions"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            result = sync_build_with_ci(build)
        except (CIRequestError, OSError) as e:
            logger.warning(f"[builds] manual sync failed build={build_id}: {e}")
            return Response(
                {"success": False, "status": build.status, "error": str(e)},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        except Exception as e:
            logger.exception(
                f"[builds] manual sync crashed build={build_id}: {e}"
            )
            return Response(
                {"success": False, "status": build.status, "error": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        body = {"success": result["success"], "status": result.get("status")}
        if result.get("download_url"):
            body["downloadUrl"] = result["download_url"]
        for key in ("message", "error"):
            if result.get(key):
                body[key] = result[key]
        return Response(body)


class GitHubCallbackAPIView(APIView):
    """
    Completion notification from the build workflow.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        tags=["builds"],
        summary="GitHub Actions build callback",
        request=CICallbackSerializer,
        responses={200: {"type": "object"}},
    )
    def post(self, request, build_id):
        expected = get_callback_token()
        if expected:
            provided = request.META.get(CALLBACK_TOKEN_HEADER, "")
            if not hmac.compare_digest(provided, expected):
                logger.warning(f"[builds] rejected callback build={build_id}")
                return Response(
                    {"success": False, "error": "Invalid callback token"},
                    status=status.HTTP_403_FORBIDDEN,
                )

        serializer = CICallbackSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"success": False, "error": "Invalid callback payload",
                 "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = serializer.validated_data
        result = handle_ci_callback(
            build_id,
            data["status"],
            run_id=data.get("run_id") or None,
            artifact_url=data.get("artifact_url") or None,
        )
        if not result["success"]:
            return Response(
                {"success": False, "error": result["error"]},
                status=result.get("status_code", 500),
            )
        return Response({"success": True, "message": result["message"]})
