from django.contrib import admin

from .models import QueueEvent


@admin.register(QueueEvent)
class QueueEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'customer_ref', 'event_type', 'from_status', 'to_status', 'counter', 'actor')
    list_filter = ('event_type', 'to_status')
    search_fields = ('customer_ref', 'reason')
    readonly_fields = [f.name for f in QueueEvent._meta.fields]
