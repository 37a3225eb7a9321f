"""
Admin configuration for build models.
"""
from django.contrib import admin
from django.db import models
from django_json_widget.widgets import JSONEditorWidget

from .models import BuildRecord


@admin.register(BuildRecord)
class BuildRecordAdmin(admin.ModelAdmin):
    """
    Admin interface for BuildRecord model.
    """
    list_display = [
        'id',
        'user',
        'platform',
        'app_name',
        'status',
        'progress',
        'github_run_id',
        'expires_at',
        'created_at',
    ]
    list_filter = ['platform', 'status', 'quota_refunded']
    search_fields = ['id', 'app_name', 'package_name', 'user__username']
    readonly_fields = [
        'id',
        'output_file_path',
        'download_url',
        'file_size',
        'syncing_since',
        'quota_refunded',
        'created_at',
        'updated_at',
    ]
    formfield_overrides = {
        models.JSONField: {'widget': JSONEditorWidget},
    }
