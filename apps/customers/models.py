# apps/customers/models.py

from django.conf import settings
from django.db import models

from core.constants import PaymentModes, QueueStatus, ACTIVE_STATUSES
from core.mixins.timestamps import TimeStampedMixin
from .values import PaymentInfo, PriorityFlags


class CustomerQuerySet(models.QuerySet):
    def active(self):
        return self.filter(queue_status__in=ACTIVE_STATUSES)

    def waiting(self):
        return self.filter(queue_status=QueueStatus.WAITING)


class Customer(TimeStampedMixin, models.Model):
    """A person moving through the service queue"""

    # Identity
    name = models.CharField(max_length=200)
    contact_number = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    or_number = models.CharField(max_length=50, unique=True)

    # Order details (opaque to the queue)
    prescription = models.JSONField(default=dict, blank=True)
    distribution_info = models.CharField(max_length=50, blank=True)
    remarks = models.TextField(blank=True)

    sales_agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='registered_customers'
    )

    # Priority flags
    priority_senior_citizen = models.BooleanField(default=False)
    priority_pwd = models.BooleanField(default=False)
    priority_pregnant = models.BooleanField(default=False)

    # Payment info captured at registration
    payment_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    payment_mode = models.CharField(max_length=20, choices=PaymentModes.choices, blank=True)

    # Queue state
    queue_status = models.CharField(
        max_length=20,
        choices=QueueStatus.choices,
        default=QueueStatus.WAITING,
        db_index=True
    )
    token_number = models.PositiveIntegerField()
    service_date = models.DateField(db_index=True)
    manual_position = models.PositiveIntegerField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)
    carried_forward = models.BooleanField(default=False)

    objects = CustomerQuerySet.as_manager()

    class Meta:
        db_table = 'customers'
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['service_date', 'token_number'],
                name='unique_token_per_service_day',
            )
        ]
        indexes = [
            models.Index(fields=['queue_status', 'created_at']),
            models.Index(fields=['service_date', 'queue_status']),
        ]

    def __str__(self):
        return f"#{self.token_number} {self.name} ({self.queue_status})"

    @property
    def priority_flags(self):
        return PriorityFlags(
            senior_citizen=self.priority_senior_citizen,
            pwd=self.priority_pwd,
            pregnant=self.priority_pregnant,
        )

    @priority_flags.setter
    def priority_flags(self, flags):
        self.priority_senior_citizen = flags.senior_citizen
        self.priority_pwd = flags.pwd
        self.priority_pregnant = flags.pregnant

    @property
    def payment_info(self):
        return PaymentInfo(amount=self.payment_amount, mode=self.payment_mode or None)


class CustomerHistory(models.Model):
    """Archived snapshot of a customer, one row per customer per archive date"""

    original_customer_id = models.BigIntegerField(db_index=True)
    name = models.CharField(max_length=200)
    or_number = models.CharField(max_length=50)
    token_number = models.PositiveIntegerField()
    queue_status = models.CharField(max_length=20, choices=QueueStatus.choices)
    priority_score = models.PositiveIntegerField(default=0)
    payment_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    remarks = models.TextField(blank=True)
    carried_forward = models.BooleanField(default=False)

    customer_created_at = models.DateTimeField()
    served_at = models.DateTimeField(null=True, blank=True)
    archive_date = models.DateField(db_index=True)
    archived_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'customer_history'
        ordering = ['-archive_date', 'token_number']
        constraints = [
            models.UniqueConstraint(
                fields=['original_customer_id', 'archive_date'],
                name='unique_customer_archive_per_day',
            )
        ]

    def __str__(self):
        return f"{self.archive_date} #{self.token_number} {self.name}"
