# core/utils.py
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone


def shop_timezone():
    return ZoneInfo(settings.ESCASHOP_TIME_ZONE)


def local_now():
    return timezone.localtime(timezone.now(), shop_timezone())


def local_today():
    """Current service day on the shop's wall clock"""
    return local_now().date()


def local_day_bounds(day):
    """Aware [start, end) datetimes covering ``day`` in shop time"""
    tz = shop_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)


def generate_or_number(day, sequence):
    """OR-YYYYMMDD-NNNN"""
    return f"OR-{day.strftime('%Y%m%d')}-{sequence:04d}"
