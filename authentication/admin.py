"""
Admin configuration for authentication models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model."""

    list_display = ['email', 'name', 'role', 'status', 'marshal_id', 'is_intake_enabled', 'is_staff']
    list_filter = ['role', 'status', 'is_intake_enabled', 'is_staff']
    search_fields = ['email', 'name', 'marshal_id', 'mobile']
    ordering = ['name', 'email']
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_login']

    fieldsets = (
        (None, {'fields': ('email', 'name', 'password')}),
        ('Role & Status', {'fields': ('role', 'status', 'is_intake_enabled')}),
        ('Marshal', {'fields': ('marshal_id', 'mobile')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Timestamps', {'fields': ('id', 'last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'role', 'status', 'password1', 'password2'),
        }),
    )
