"""
Build history views: list with stats, detail, delete and polling.
"""
import logging
from datetime import timedelta

from django.db.models import Count
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..constants import BuildStatus, Platform
from ..models import BuildRecord
from ..serializers import BuildPollingSerializer, BuildRecordSerializer
from ..services.ci_sync import cleanup_intermediate
from ..services.expiry import apply_expiry
from ..services.storage import delete_build_files, delete_file
from ..services.watchdog import request_user_sweep

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100
POLLING_WINDOW = timedelta(hours=1)
POLLING_LIMIT = 20


def user_builds(user):
    """
    A user's visible builds; intermediate source records are internal.
    """
    return BuildRecord.objects.filter(user=user).exclude(
        platform=Platform.ANDROID_SOURCE
    )


def parse_limit(value):
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return DEFAULT_LIST_LIMIT
    return max(1, min(limit, MAX_LIST_LIMIT))


def build_stats(queryset):
    by_status = {
        row["status"]: row["count"]
        for row in queryset.values("status").annotate(count=Count("id"))
    }
    by_platform = {
        row["platform"]: row["count"]
        for row in queryset.values("platform").annotate(count=Count("id"))
    }
    return {
        "total": sum(by_status.values()),
        "by_status": {
            key: by_status.get(key, 0) for key, _ in BuildStatus.CHOICES
        },
        "by_platform": by_platform,
    }


class BuildListAPIView(APIView):
    """
    The user's builds, newest first.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["builds"],
        summary="List builds",
        description=(
            "Expired builds are returned without file links and their "
            "files are deleted in the background."
        ),
        parameters=[
            OpenApiParameter(
                "limit", int, description="Max builds (default 50, max 100)"
            ),
        ],
        responses={200: BuildRecordSerializer(many=True)},
    )
    def get(self, request):
        queryset = user_builds(request.user)
        limit = parse_limit(request.query_params.get("limit"))
        builds = apply_expiry(queryset.order_by("-created_at")[:limit])
        return Response({
            "builds": BuildRecordSerializer(builds, many=True).data,
            "stats": build_stats(queryset),
        })


class BuildDetailAPIView(APIView):
    """
    One build of the user.
    """
    permission_classes = [IsAuthenticated]

    def get_build(self, request, build_id):
        return user_builds(request.user).filter(pk=build_id).first()

    @extend_schema(
        tags=["builds"],
        summary="Get build",
        responses={200: BuildRecordSerializer},
    )
    def get(self, request, build_id):
        build = self.get_build(request, build_id)
        if build is None:
            return Response(
                {"error": "Build not found"}, status=status.HTTP_404_NOT_FOUND
            )
        build = apply_expiry([build])[0]
        return Response(BuildRecordSerializer(build).data)

    @extend_schema(
        tags=["builds"],
        summary="Delete build",
        description="Delete the build's stored files, then the record.",
        responses={200: {"type": "object"}},
    )
    def delete(self, request, build_id):
        build = self.get_build(request, build_id)
        if build is None:
            return Response(
                {"error": "Build not found"}, status=status.HTTP_404_NOT_FOUND
            )
        try:
            delete_file(build.output_file_path)
            delete_file(build.icon_path)
            delete_build_files(build.id)
        except Exception as e:
            logger.warning(f"[builds] file delete failed build={build.id}: {e}")
        cleanup_intermediate(build.id)
        build.delete()
        logger.info(f"[builds] deleted build={build_id} user={request.user.id}")
        return Response({"success": True})


class BuildPollingAPIView(APIView):
    """
    Progress of the user's running builds. Also nudges the CI watchdog.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["builds"],
        summary="Poll running builds",
        description=(
            "Non-terminal builds created in the last hour (max 20). "
            "Queues a resync of the user's APK builds stuck on CI, at "
            "most once per sweep interval."
        ),
        responses={200: BuildPollingSerializer(many=True)},
    )
    def get(self, request):
        since = timezone.now() - POLLING_WINDOW
        builds = user_builds(request.user).filter(
            status__in=BuildStatus.get_active_statuses(),
            created_at__gte=since,
        ).order_by("-created_at")[:POLLING_LIMIT]
        data = BuildPollingSerializer(builds, many=True).data

        if request_user_sweep(request.user.id):
            from ..tasks import auto_sync_builds

            auto_sync_builds.delay(request.user.id)
        return Response({"builds": data})
