# core/constants.py

from decimal import Decimal

from django.db import models


class UserRoles(models.TextChoices):
    """User role constants for RBAC"""
    SUPER_ADMIN = 'super_admin', 'Super Administrator'
    ADMIN = 'admin', 'Administrator'
    SALES = 'sales', 'Sales Agent'
    CASHIER = 'cashier', 'Cashier'


ADMIN_ROLES = (UserRoles.SUPER_ADMIN, UserRoles.ADMIN)


class QueueStatus(models.TextChoices):
    WAITING = 'waiting', 'Waiting'
    SERVING = 'serving', 'Serving'
    PROCESSING = 'processing', 'Processing'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


TERMINAL_STATUSES = (QueueStatus.COMPLETED, QueueStatus.CANCELLED)
ACTIVE_STATUSES = (QueueStatus.WAITING, QueueStatus.SERVING, QueueStatus.PROCESSING)


class PaymentStatus(models.TextChoices):
    UNPAID = 'unpaid', 'Unpaid'
    PARTIAL = 'partial', 'Partial'
    PAID = 'paid', 'Paid'


class PaymentModes(models.TextChoices):
    GCASH = 'gcash', 'GCash'
    MAYA = 'maya', 'Maya'
    BANK_TRANSFER = 'bank_transfer', 'Bank Transfer'
    CREDIT_CARD = 'credit_card', 'Credit Card'
    CASH = 'cash', 'Cash'


class QueueEventType(models.TextChoices):
    CALLED = 'called', 'Called'
    PROCESSING_STARTED = 'processing_started', 'Processing Started'
    SERVED = 'served', 'Served'
    CANCELLED = 'cancelled', 'Cancelled'
    STATUS_CHANGED = 'status_changed', 'Status Changed'
    REORDERED = 'reordered', 'Reordered'
    RESET = 'reset', 'Reset'


# Priority weights (highest flag wins for ordering)
PRIORITY_WEIGHTS = {
    'senior_citizen': 1000,
    'pwd': 900,
    'pregnant': 800,
}

TWO_PLACES = Decimal('0.01')

DAILY_TOKEN_COUNTER_KEY = 'daily_token_counter'
AVERAGE_SERVICE_TIME_KEY = 'average_service_time'


class AuditActions:
    """Audit log action types"""
    CREATE = 'CREATE'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'
    STATUS_CHANGE = 'STATUS_CHANGE'
    QUEUE_CALL = 'QUEUE_CALL'
    QUEUE_REORDER = 'QUEUE_REORDER'
    QUEUE_RESET = 'QUEUE_RESET'
    SETTLEMENT = 'SETTLEMENT'
    DAILY_RESET = 'DAILY_RESET'

    ALL = {
        CREATE, UPDATE, DELETE, STATUS_CHANGE, QUEUE_CALL,
        QUEUE_REORDER, QUEUE_RESET, SETTLEMENT, DAILY_RESET,
    }
