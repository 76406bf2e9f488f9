from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ['email', 'full_name', 'phone', 'is_admin', 'is_active', 'created_at']
    list_filter = ['is_admin', 'is_active']
    search_fields = ['email', 'full_name', 'phone']
    readonly_fields = ['created_at', 'updated_at', 'last_login']
    ordering = ['-created_at']
