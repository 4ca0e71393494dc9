# apps/realtime/receivers.py
import logging

from django.dispatch import receiver

from .signals import realtime_event

logger = logging.getLogger(__name__)


@receiver(realtime_event)
def log_realtime_event(sender, event, payload, **kwargs):
    logger.debug(f"[REALTIME] {event}: {payload}")
