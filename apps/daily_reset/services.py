# apps/daily_reset/services.py
"""
Daily queue reset.

Closes the previous service day: snapshots it, archives its customers,
completes anything left over from earlier days, puts today's unfinished
customers back in line and restarts token numbering.
"""

import logging
from collections import Counter as Tally
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.audit.services import log_action
from apps.counters.models import Counter
from apps.customers.models import Customer, CustomerHistory
from apps.customers.services import archive_customer
from apps.realtime import events
from apps.realtime.broadcaster import get_broadcaster
from apps.service_queue.models import QueueEvent
from apps.service_queue.services import QueueService
from apps.settings_core.services import SettingsService
from core.constants import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    AuditActions,
    QueueEventType,
    QueueStatus,
)
from core.utils import local_day_bounds, local_today, shop_timezone
from .models import DailyQueueHistory, DailyResetLog

logger = logging.getLogger(__name__)


def build_snapshot(customers, now=None):
    """Summary counts for one day's customers"""
    now = now or timezone.now()
    statuses = Tally(c.queue_status for c in customers)

    waits = []
    for customer in customers:
        end = customer.served_at if customer.served_at else now
        waits.append(max((end - customer.created_at).total_seconds() / 60, 0))

    per_hour = Tally(timezone.localtime(c.created_at, shop_timezone()).hour for c in customers)

    return {
        'total_customers': len(customers),
        'waiting_customers': statuses[QueueStatus.WAITING],
        'serving_customers': statuses[QueueStatus.SERVING],
        'processing_customers': statuses[QueueStatus.PROCESSING],
        'completed_customers': statuses[QueueStatus.COMPLETED],
        'cancelled_customers': statuses[QueueStatus.CANCELLED],
        'priority_customers': sum(1 for c in customers if c.priority_flags.is_priority),
        'avg_wait_time_minutes': (
            Decimal(str(round(sum(waits) / len(waits), 2))) if waits else Decimal('0.00')
        ),
        'peak_queue_length': max(per_hour.values(), default=0),
    }


class DailyQueueResetService:
    """Service for the end-of-day queue rollover"""

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or get_broadcaster()
        self.queue = QueueService(broadcaster=self.broadcaster)

    @staticmethod
    def already_reset(reset_date):
        return DailyResetLog.objects.filter(reset_date=reset_date, success=True).exists()

    def perform_daily_reset(self, force=False, reset_date=None):
        """
        Run the reset for ``reset_date`` (default: today on the shop clock).

        Returns the ``DailyResetLog`` row, or ``None`` when a successful
        reset for the date already exists and ``force`` is not set.
        """
        reset_date = reset_date or local_today()
        closing_day = reset_date - timedelta(days=1)

        if not force and self.already_reset(reset_date):
            logger.info(f"[DAILY_RESET] Reset for {reset_date} already done, skipping")
            return None

        logger.info(f"[DAILY_RESET] Starting reset for {reset_date} (closing {closing_day}, force={force})")

        with transaction.atomic():
            for counter in Counter.objects.select_for_update().order_by('id'):
                if counter.current_customer_id is not None:
                    counter.current_customer = None
                    counter.save(update_fields=['current_customer', 'updated_at'])

            closing = list(Customer.objects.filter(service_date=closing_day).order_by('id'))
            snapshot = build_snapshot(closing)
            history, _ = DailyQueueHistory.objects.update_or_create(date=closing_day, defaults=snapshot)

            leftover = Customer.objects.select_for_update().filter(
                queue_status__in=ACTIVE_STATUSES,
            ).order_by('id')

            processed = carried = 0
            for customer in leftover:
                if customer.service_date < reset_date:
                    self.queue._apply(
                        customer, QueueStatus.COMPLETED,
                        reason='Daily reset', event_type=QueueEventType.RESET,
                    )
                    processed += 1
                    continue

                if customer.queue_status != QueueStatus.WAITING:
                    self.queue._apply(
                        customer, QueueStatus.WAITING,
                        reason='Daily reset', event_type=QueueEventType.RESET,
                    )
                customer.carried_forward = True
                customer.manual_position = None
                customer.save(update_fields=['carried_forward', 'manual_position', 'updated_at'])
                carried += 1

            for customer in Customer.objects.filter(service_date=closing_day):
                archive_customer(customer, closing_day)
            processed += sum(1 for c in closing if c.queue_status in TERMINAL_STATUSES)

            setting = SettingsService.reset_daily_token_counter()
            reset_log = DailyResetLog.objects.create(
                reset_date=reset_date,
                success=True,
                forced=force,
                customers_processed=processed,
                customers_carried_forward=carried,
            )
            log_action(
                instance=setting,
                action=AuditActions.DAILY_RESET,
                metadata={
                    'reset_date': reset_date.isoformat(),
                    'closing_day': closing_day.isoformat(),
                    'processed': processed,
                    'carried_forward': carried,
                    'history_id': history.pk,
                },
            )

        logger.info(
            f"[DAILY_RESET] Done for {reset_date}: {processed} processed, {carried} carried forward, "
            f"{snapshot['total_customers']} customers on {closing_day}"
        )
        self.broadcaster.emit_queue_update({
            'type': events.DAILY_RESET,
            'date': reset_date.isoformat(),
            'customersProcessed': processed,
            'customersCarriedForward': carried,
        })
        return reset_log

    @staticmethod
    def record_failure(error, force=False, reset_date=None):
        return DailyResetLog.objects.create(
            reset_date=reset_date or local_today(),
            success=False,
            forced=force,
            error_message=str(error)[:2000],
        )

    @staticmethod
    def cleanup_history(retention_days=None):
        """Drop history rows older than the retention window"""
        if retention_days is None:
            retention_days = settings.ESCASHOP_HISTORY_RETENTION_DAYS
        cutoff = local_today() - timedelta(days=retention_days)
        cutoff_start, _ = local_day_bounds(cutoff)

        customers_deleted, _ = CustomerHistory.objects.filter(archive_date__lt=cutoff).delete()
        events_deleted, _ = QueueEvent.objects.filter(created_at__lt=cutoff_start).delete()
        snapshots_deleted, _ = DailyQueueHistory.objects.filter(date__lt=cutoff).delete()
        reset_logs_deleted, _ = DailyResetLog.objects.filter(reset_date__lt=cutoff).delete()

        logger.info(
            f"[HISTORY_CLEANUP] Removed {customers_deleted} archived customers, "
            f"{events_deleted} queue events, {snapshots_deleted} day snapshots and "
            f"{reset_logs_deleted} reset logs before {cutoff}"
        )
        return {
            'cutoff': cutoff.isoformat(),
            'customer_history_deleted': customers_deleted,
            'queue_events_deleted': events_deleted,
            'daily_history_deleted': snapshots_deleted,
            'reset_logs_deleted': reset_logs_deleted,
        }

    @staticmethod
    def get_daily_history(days=30):
        since = local_today() - timedelta(days=days)
        return DailyQueueHistory.objects.filter(date__gte=since).order_by('-date')
