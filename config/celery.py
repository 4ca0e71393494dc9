# config/celery.py
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.base')

app = Celery('escashop')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()


@app.on_after_finalize.connect
def setup_periodic_tasks(sender, **kwargs):
    """Daily queue reset and weekly history cleanup, in shop local time"""
    from django.conf import settings

    sender.add_periodic_task(
        crontab(
            hour=settings.ESCASHOP_DAILY_RESET_HOUR,
            minute=settings.ESCASHOP_DAILY_RESET_MINUTE,
        ),
        sender.signature('apps.daily_reset.tasks.run_daily_queue_reset'),
        name='daily-queue-reset',
    )
    sender.add_periodic_task(
        crontab(hour=2, minute=0, day_of_week='sunday'),
        sender.signature('apps.daily_reset.tasks.cleanup_queue_history'),
        name='weekly-history-cleanup',
    )
