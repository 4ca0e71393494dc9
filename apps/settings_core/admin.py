# apps/settings_core/admin.py
from django.contrib import admin

from .models import SystemSetting


@admin.register(SystemSetting)
class SystemSettingAdmin(admin.ModelAdmin):
    list_display = ('key', 'value', 'last_modified_by', 'updated_at')
    search_fields = ('key', 'description')
    readonly_fields = ('last_modified_by', 'updated_at')
