"""
Serializers for shares API.
"""
from rest_framework import serializers

from .constants import DEFAULT_EXPIRES_IN_DAYS, ShareType


class CreateShareSerializer(serializers.Serializer):
    build_id = serializers.CharField(max_length=64)
    expire_days = serializers.IntegerField(min_value=1)
    share_type = serializers.ChoiceField(
        choices=ShareType.get_all_types(), default=ShareType.LINK
    )
    make_public = serializers.BooleanField(default=False)
    expires_in_days = serializers.IntegerField(
        required=False, default=DEFAULT_EXPIRES_IN_DAYS,
        help_text="Link lifetime, clamped to 1-30 days",
    )
