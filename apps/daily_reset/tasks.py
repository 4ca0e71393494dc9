# apps/daily_reset/tasks.py
import logging

from celery import shared_task
from django.core.cache import cache

from core.utils import local_today
from .services import DailyQueueResetService

logger = logging.getLogger(__name__)

RESET_LOCK_KEY = 'daily_reset:lock'
RESET_LOCK_TIMEOUT = 15 * 60


@shared_task
def run_daily_queue_reset(force=False):
    """Scheduled rollover; one run at a time"""
    if not cache.add(RESET_LOCK_KEY, 1, RESET_LOCK_TIMEOUT):
        logger.warning("[DAILY_RESET] Another reset is running, skipping this run")
        return {'status': 'locked'}

    reset_date = local_today()
    try:
        reset_log = DailyQueueResetService().perform_daily_reset(force=force, reset_date=reset_date)
    except Exception as exc:
        logger.exception(f"[DAILY_RESET] Reset for {reset_date} failed")
        DailyQueueResetService.record_failure(exc, force=force, reset_date=reset_date)
        raise
    finally:
        cache.delete(RESET_LOCK_KEY)

    if reset_log is None:
        return {'status': 'skipped', 'date': reset_date.isoformat()}
    return {
        'status': 'done',
        'date': reset_date.isoformat(),
        'customers_processed': reset_log.customers_processed,
        'customers_carried_forward': reset_log.customers_carried_forward,
    }


@shared_task
def cleanup_queue_history(retention_days=None):
    """Weekly pruning of archived customers and queue events"""
    return DailyQueueResetService.cleanup_history(retention_days)
