"""
Build submission views: single platform and batch.
"""
import base64

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..constants import BuildStatus
from ..serializers import BatchBuildSerializer, BuildSubmitSerializer
from ..services import submit_batch, submit_build


def error_response(result):
    """
    Translate a failed service result into {error, message}.
    """
    body = {"error": result.get("error"), "message": result.get("message")}
    for key in ("remaining", "limit"):
        if key in result:
            body[key] = result[key]
    return Response(body, status=result.get("status_code", 500))


def invalid_input_response(errors):
    return Response(
        {
            "error": "Missing required fields",
            "message": "Invalid build request",
            "details": errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


class SubmitBuildAPIView(APIView):
    """
    Start a build for one platform.
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    @extend_schema(
        tags=["builds"],
        summary="Submit build",
        description=(
            "Validate, deduct one unit of daily quota and queue the build. "
            "android-apk builds compile on GitHub Actions and take several "
            "minutes."
        ),
        request=BuildSubmitSerializer,
        responses={201: {"type": "object"}},
    )
    def post(self, request, platform):
        serializer = BuildSubmitSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer.errors)

        config = dict(serializer.validated_data)
        upload = config.pop("icon", None)
        if upload is not None:
            config["icon_base64"] = base64.b64encode(upload.read()).decode()

        result = submit_build(request.user, platform, config)
        if not result["success"]:
            return error_response(result)

        return Response(
            {
                "success": True,
                "buildId": result["build_id"],
                "status": BuildStatus.PENDING,
                "message": "Build started",
            },
            status=status.HTTP_201_CREATED,
        )


class BatchBuildAPIView(APIView):
    """
    Start builds for several platforms of one URL.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["builds"],
        summary="Submit batch build",
        request=BatchBuildSerializer,
        responses={200: {"type": "object"}},
    )
    def post(self, request):
        serializer = BatchBuildSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer.errors)

        data = serializer.validated_data
        result = submit_batch(
            request.user,
            data["url"],
            [dict(entry) for entry in data["platforms"]],
        )
        if not result["success"]:
            return error_response(result)

        return Response({
            "success": True,
            "buildIds": result["build_ids"],
            "count": len(result["build_ids"]),
            "message": "Build tasks created successfully",
        })
