"""
Admin configuration for shares.
"""
from django.contrib import admin

from .models import BuildShare


@admin.register(BuildShare)
class BuildShareAdmin(admin.ModelAdmin):
    list_display = [
        'share_code',
        'build',
        'user',
        'share_type',
        'is_public',
        'access_count',
        'expires_at',
        'created_at',
    ]
    list_filter = ['share_type', 'is_public']
    search_fields = ['share_code', 'build__id', 'user__username']
    readonly_fields = ['share_code', 'access_count', 'created_at', 'updated_at']
    raw_id_fields = ['build', 'user']
