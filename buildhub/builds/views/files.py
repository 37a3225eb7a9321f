"""
Signed download endpoint for stored build files.
"""
import os

from django.http import FileResponse
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from ..services.storage import get_storage, resolve_download_token


class BuildFileDownloadAPIView(APIView):
    """
    Stream a file granted by a signed, time-limited token.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        tags=["builds"],
        summary="Download build file",
        parameters=[OpenApiParameter("token", str, required=True)],
        responses={200: None},
    )
    def get(self, request):
        path = resolve_download_token(request.query_params.get("token", ""))
        if not path:
            return Response(
                {"error": "Download link is invalid or has expired"},
                status=status.HTTP_403_FORBIDDEN,
            )
        storage = get_storage()
        if not storage.exists(path):
            return Response(
                {"error": "File not found"}, status=status.HTTP_404_NOT_FOUND
            )
        return FileResponse(
            storage.open(path, "rb"),
            as_attachment=True,
            filename=os.path.basename(path),
        )
