"""
Admin configuration for quota models.
"""
from django.contrib import admin

from .models import UserWallet


@admin.register(UserWallet)
class UserWalletAdmin(admin.ModelAdmin):
    """
    Admin interface for UserWallet model.
    """
    list_display = [
        'user',
        'plan',
        'daily_builds_used',
        'daily_builds_limit',
        'daily_builds_reset_at',
        'file_retention_days',
        'updated_at',
    ]
    list_filter = ['plan']
    search_fields = ['user__username', 'user__email']
    readonly_fields = ['created_at', 'updated_at']
