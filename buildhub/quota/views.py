"""
Quota views: wallet summary and pre-flight quota check.
"""
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import QuotaCheckSerializer, UserWalletSerializer
from .services import check_daily_quota, get_or_create_wallet
from .services.ledger import get_today_string


class WalletAPIView(APIView):
    """
    Current user's wallet.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["quota"],
        summary="Get wallet",
        description="Plan, daily build allowance and retention window.",
        responses={200: UserWalletSerializer},
    )
    def get(self, request):
        wallet = get_or_create_wallet(request.user.id)
        serializer = UserWalletSerializer(
            wallet, context={"today": get_today_string()}
        )
        return Response(serializer.data)


class QuotaCheckAPIView(APIView):
    """
    Check whether the user can start `count` builds (batch pre-flight).
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["quota"],
        summary="Check daily quota",
        request=QuotaCheckSerializer,
        responses={200: {"type": "object"}},
    )
    def post(self, request):
        serializer = QuotaCheckSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"error": "Invalid count parameter", "allowed": False},
                status=status.HTTP_400_BAD_REQUEST,
            )
        count = serializer.validated_data["count"]
        result = check_daily_quota(request.user.id, count)
        return Response({
            "allowed": result["allowed"],
            "remaining": result["remaining"],
            "limit": result["limit"],
            "requested": count,
        })
