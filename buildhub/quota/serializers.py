"""
Serializers for quota API.
"""
from rest_framework import serializers

from .constants import MAX_CHECK_COUNT
from .models import UserWallet


class UserWalletSerializer(serializers.ModelSerializer):
    """
    Wallet with today's effective usage.
    """
    daily_builds_remaining = serializers.SerializerMethodField()

    class Meta:
        model = UserWallet
        fields = [
            "plan",
            "daily_builds_limit",
            "daily_builds_used",
            "daily_builds_remaining",
            "daily_builds_reset_at",
            "file_retention_days",
            "updated_at",
        ]
        read_only_fields = fields

    def get_daily_builds_remaining(self, obj):
        today = self.context.get("today")
        used = obj.daily_builds_used
        if today and obj.daily_builds_reset_at != today:
            used = 0
        return max(0, obj.daily_builds_limit - used)


class QuotaCheckSerializer(serializers.Serializer):
    """
    Input for the pre-flight quota check.
    """
    count = serializers.IntegerField(
        min_value=1, max_value=MAX_CHECK_COUNT, default=1
    )
