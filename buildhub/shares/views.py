"""
Share views: owner management and public access by code.
"""
from django.http import HttpResponseRedirect
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import CreateShareSerializer
from .services import create_share, delete_share, list_shares, resolve_share


def error_response(result):
    body = {k: v for k, v in result.items() if k != "status_code"}
    return Response(body, status=result.get("status_code", 500))


class ShareAPIView(APIView):
    """
    Create, list and revoke share links of the user's builds.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["shares"],
        summary="Create share",
        description=(
            "Pro and Team plans only; QR code shares need Team. The link "
            "never outlives the build."
        ),
        request=CreateShareSerializer,
        responses={200: {"type": "object"}},
    )
    def post(self, request):
        serializer = CreateShareSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"error": "Missing required parameters",
                 "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = serializer.validated_data
        result = create_share(
            request.user,
            data["build_id"],
            data["expire_days"],
            share_type=data["share_type"],
            make_public=data["make_public"],
            expires_in_days=data["expires_in_days"],
        )
        if not result["success"]:
            return error_response(result)
        return Response({"success": True, "share": result["share"]})

    @extend_schema(
        tags=["shares"],
        summary="List shares of a build",
        parameters=[OpenApiParameter("build_id", str, required=True)],
        responses={200: {"type": "object"}},
    )
    def get(self, request):
        build_id = request.query_params.get("build_id")
        if not build_id:
            return Response(
                {"error": "Missing build_id"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({"shares": list_shares(request.user, build_id)})

    @extend_schema(
        tags=["shares"],
        summary="Delete share",
        parameters=[OpenApiParameter("id", int, required=True)],
        responses={200: {"type": "object"}},
    )
    def delete(self, request):
        share_id = request.query_params.get("id")
        if not share_id or not share_id.isdigit():
            return Response(
                {"error": "Missing share id"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not delete_share(request.user, int(share_id)):
            return Response(
                {"error": "Share not found"}, status=status.HTTP_404_NOT_FOUND
            )
        return Response({"success": True})


class ShareAccessAPIView(APIView):
    """
    Public view of a shared build.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        tags=["shares"],
        summary="Open share",
        parameters=[OpenApiParameter("secret", str)],
        responses={200: {"type": "object"}},
    )
    def get(self, request, code):
        result = resolve_share(code, request.query_params.get("secret"))
        if not result["success"]:
            return error_response(result)
        return Response(result)


class ShareDownloadAPIView(APIView):
    """
    Redirect straight to a shared build's signed download URL.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        tags=["shares"],
        summary="Download shared build",
        parameters=[OpenApiParameter("secret", str)],
        responses={302: None},
    )
    def get(self, request, code):
        result = resolve_share(code, request.query_params.get("secret"))
        if not result["success"]:
            return error_response(result)
        return HttpResponseRedirect(result["build"]["downloadUrl"])
