from django.contrib import admin

from .models import Counter


@admin.register(Counter)
class CounterAdmin(admin.ModelAdmin):
    list_display = ('name', 'display_order', 'is_active', 'current_customer')
    list_filter = ('is_active',)
    search_fields = ('name',)
    readonly_fields = ('current_customer', 'created_at', 'updated_at')
