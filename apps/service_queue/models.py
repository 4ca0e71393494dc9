# apps/service_queue/models.py
from django.conf import settings
from django.db import models

from core.constants import QueueEventType, QueueStatus


class QueueEvent(models.Model):
    """Append-only log of every queue movement"""

    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='queue_events'
    )
    customer_ref = models.BigIntegerField(db_index=True)
    counter = models.ForeignKey(
        'counters.Counter',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='queue_events'
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='queue_events'
    )

    event_type = models.CharField(max_length=30, choices=QueueEventType.choices)
    from_status = models.CharField(max_length=20, choices=QueueStatus.choices, blank=True)
    to_status = models.CharField(max_length=20, choices=QueueStatus.choices, blank=True)
    reason = models.TextField(blank=True)

    processing_start_at = models.DateTimeField(null=True, blank=True)
    processing_end_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'queue_events'
        ordering = ['id']
        indexes = [
            models.Index(fields=['customer_ref', 'created_at']),
            models.Index(fields=['event_type', 'created_at']),
        ]

    def __str__(self):
        return f"{self.event_type} {self.customer_ref}: {self.from_status} -> {self.to_status}"
