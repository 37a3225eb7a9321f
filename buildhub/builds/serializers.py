"""
Serializers for the builds API.
"""
from rest_framework import serializers

from .constants import BuildStatus
from .models import BuildRecord
from .services.storage import get_temp_download_url

MAX_BATCH_PLATFORMS = 10


class PlatformOptionsSerializer(serializers.Serializer):
    """
    Per-platform build options shared by single and batch submission.
    """
    app_name = serializers.CharField(max_length=128)
    package_name = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )
    version_name = serializers.CharField(
        max_length=32, required=False, allow_blank=True
    )
    version_code = serializers.CharField(
        max_length=16, required=False, allow_blank=True
    )
    privacy_policy = serializers.CharField(required=False, allow_blank=True)
    icon_path = serializers.CharField(
        max_length=1024, required=False, allow_blank=True
    )
    icon_url = serializers.CharField(
        max_length=2048, required=False, allow_blank=True
    )
    icon_base64 = serializers.CharField(required=False, allow_blank=True)

    # Platform extras
    app_id = serializers.CharField(
        max_length=64, required=False, allow_blank=True,
        help_text="WeChat mini program appid",
    )
    description = serializers.CharField(
        max_length=512, required=False, allow_blank=True,
        help_text="Chrome extension description",
    )
    width = serializers.IntegerField(required=False, min_value=1)
    height = serializers.IntegerField(required=False, min_value=1)


class BuildSubmitSerializer(PlatformOptionsSerializer):
    """
    Input for a single-platform build. `icon` accepts a multipart upload.
    """
    url = serializers.CharField(max_length=2048)
    icon = serializers.FileField(required=False, write_only=True)


class BatchPlatformSerializer(PlatformOptionsSerializer):
    platform = serializers.CharField(max_length=32)


class BatchBuildSerializer(serializers.Serializer):
    """
    Input for a batch build: one URL, several platform entries.
    """
    url = serializers.CharField(max_length=2048)
    platforms = BatchPlatformSerializer(
        many=True, allow_empty=False, max_length=MAX_BATCH_PLATFORMS
    )


class BuildRecordSerializer(serializers.ModelSerializer):
    """
    Build as shown to its owner.

    Download and icon links are signed on every read; expired builds show
    no file links.
    """
    download_url = serializers.SerializerMethodField()
    icon_url = serializers.SerializerMethodField()
    expired = serializers.SerializerMethodField()

    class Meta:
        model = BuildRecord
        fields = [
            "id",
            "platform",
            "app_name",
            "package_name",
            "version_name",
            "version_code",
            "url",
            "status",
            "progress",
            "error_message",
            "output_file_path",
            "download_url",
            "icon_url",
            "file_size",
            "expires_at",
            "expired",
            "github_run_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_expired(self, obj):
        return getattr(obj, "expired", obj.is_expired)

    def get_download_url(self, obj):
        if self.get_expired(obj) or not obj.output_file_path:
            return None
        if obj.status != BuildStatus.COMPLETED:
            return None
        return get_temp_download_url(obj.output_file_path)

    def get_icon_url(self, obj):
        if self.get_expired(obj) or not obj.icon_path:
            return None
        return get_temp_download_url(obj.icon_path)


class BuildPollingSerializer(serializers.ModelSerializer):
    class Meta:
        model = BuildRecord
        fields = ["id", "status", "progress", "platform", "github_run_id"]
        read_only_fields = fields


class CICallbackSerializer(serializers.Serializer):
    """
    Completion notification sent by the build workflow.
    """
    status = serializers.CharField(max_length=32)
    run_id = serializers.CharField(
        max_length=32, required=False, allow_blank=True, allow_null=True
    )
    artifact_url = serializers.CharField(
        max_length=1024, required=False, allow_blank=True, allow_null=True
    )
