from django.apps import AppConfig


class DailyResetConfig(AppConfig):
    name = 'apps.daily_reset'
    verbose_name = 'Daily Queue Reset'
