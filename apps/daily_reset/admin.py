from django.contrib import admin

from .models import DailyQueueHistory, DailyResetLog


@admin.register(DailyQueueHistory)
class DailyQueueHistoryAdmin(admin.ModelAdmin):
    list_display = (
        'date', 'total_customers', 'completed_customers', 'cancelled_customers',
        'priority_customers', 'avg_wait_time_minutes', 'peak_queue_length',
    )
    date_hierarchy = 'date'
    readonly_fields = [f.name for f in DailyQueueHistory._meta.fields]


@admin.register(DailyResetLog)
class DailyResetLogAdmin(admin.ModelAdmin):
    list_display = ('reset_date', 'success', 'forced', 'customers_processed', 'customers_carried_forward', 'created_at')
    list_filter = ('success', 'forced')
    readonly_fields = [f.name for f in DailyResetLog._meta.fields]
