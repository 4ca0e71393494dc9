# apps/daily_reset/models.py
from decimal import Decimal

from django.db import models


class DailyQueueHistory(models.Model):
    """One snapshot per closed service day"""

    date = models.DateField(unique=True)
    total_customers = models.PositiveIntegerField(default=0)
    waiting_customers = models.PositiveIntegerField(default=0)
    serving_customers = models.PositiveIntegerField(default=0)
    processing_customers = models.PositiveIntegerField(default=0)
    completed_customers = models.PositiveIntegerField(default=0)
    cancelled_customers = models.PositiveIntegerField(default=0)
    priority_customers = models.PositiveIntegerField(default=0)
    avg_wait_time_minutes = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    peak_queue_length = models.PositiveIntegerField(default=0)

    archived_at = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'daily_queue_history'
        ordering = ['-date']
        verbose_name_plural = 'Daily queue history'

    def __str__(self):
        return f"{self.date}: {self.total_customers} customers"


class DailyResetLog(models.Model):
    """Every reset attempt, successful or not"""

    reset_date = models.DateField(db_index=True)
    success = models.BooleanField(default=True)
    forced = models.BooleanField(default=False)
    customers_processed = models.PositiveIntegerField(default=0)
    customers_carried_forward = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'daily_reset_log'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['reset_date', 'success']),
        ]

    def __str__(self):
        outcome = 'ok' if self.success else 'failed'
        return f"Reset {self.reset_date} ({outcome})"
