# apps/settings_core/services.py

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Max

from core.constants import AVERAGE_SERVICE_TIME_KEY, DAILY_TOKEN_COUNTER_KEY
from .models import SystemSetting

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for reading and writing shop settings"""

    @staticmethod
    def get_setting(key, default=None):
        return SystemSetting.get_setting(key, default)

    @staticmethod
    def set_setting(key, value, user=None):
        return SystemSetting.set_setting(key, value, user)

    @staticmethod
    def get_int(key, default):
        raw = SystemSetting.get_setting(key)
        try:
            return int(raw) if raw not in (None, '') else default
        except (TypeError, ValueError):
            logger.warning(f"[SETTINGS] {key} holds non-integer value {raw!r}, using {default}")
            return default

    @staticmethod
    def average_service_minutes():
        return SettingsService.get_int(
            AVERAGE_SERVICE_TIME_KEY,
            settings.ESCASHOP_AVERAGE_SERVICE_MINUTES,
        )

    @staticmethod
    @transaction.atomic
    def take_daily_token(service_date=None):
        """
        Hand out the next daily token and advance the counter.

        The counter row is locked for the duration of the caller's
        transaction, so concurrent registrations serialize here. With a
        ``service_date``, tokens already issued for that day are skipped;
        they are read after the lock is held.
        """
        setting, _ = SystemSetting.objects.select_for_update().get_or_create(
            key=DAILY_TOKEN_COUNTER_KEY,
            defaults={'value': '1', 'description': 'Next token number for today'},
        )
        try:
            current = int(setting.value)
        except (TypeError, ValueError):
            current = 1
        floor = 1
        if service_date is not None:
            from apps.customers.models import Customer

            issued = Customer.objects.filter(service_date=service_date).aggregate(
                top=Max('token_number')
            )['top'] or 0
            floor = issued + 1
        token = max(current, floor)
        setting.value = str(token + 1)
        setting.save(update_fields=['value', 'updated_at'])
        return token

    @staticmethod
    def reset_daily_token_counter(user=None):
        logger.info("[SETTINGS] Daily token counter reset to 1")
        return SystemSetting.set_setting(DAILY_TOKEN_COUNTER_KEY, 1, user)
