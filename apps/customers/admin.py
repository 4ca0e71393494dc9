from django.contrib import admin

from .models import Customer, CustomerHistory


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = (
        'token_number', 'name', 'or_number', 'queue_status',
        'service_date', 'manual_position', 'sales_agent', 'created_at',
    )
    list_filter = ('queue_status', 'service_date', 'priority_senior_citizen', 'priority_pwd', 'priority_pregnant')
    search_fields = ('name', 'or_number', 'contact_number', 'email')
    # Status moves go through the queue service, never the admin form
    readonly_fields = ('queue_status', 'token_number', 'service_date', 'served_at', 'created_at', 'updated_at')
    ordering = ('-service_date', 'token_number')


@admin.register(CustomerHistory)
class CustomerHistoryAdmin(admin.ModelAdmin):
    list_display = ('archive_date', 'token_number', 'name', 'or_number', 'queue_status', 'carried_forward')
    list_filter = ('archive_date', 'queue_status', 'carried_forward')
    search_fields = ('name', 'or_number')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
