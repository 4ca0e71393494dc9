# apps/counters/models.py
from django.db import models

from core.mixins.timestamps import TimeStampedMixin


class Counter(TimeStampedMixin, models.Model):
    """
    Physical service station. At most one occupant; the one-to-one column
    also stops two counters from holding the same customer.
    """

    name = models.CharField(max_length=100, unique=True)
    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    # Non-owning reference: deleting the customer only clears it
    current_customer = models.OneToOneField(
        'customers.Customer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='counter',
    )

    class Meta:
        db_table = 'counters'
        ordering = ['display_order', 'name']
        indexes = [
            models.Index(fields=['is_active', 'display_order']),
        ]

    def __str__(self):
        return self.name
