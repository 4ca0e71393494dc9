# apps/settings_core/models.py
from django.conf import settings
from django.db import models


class SystemSetting(models.Model):
    """
    Global key/value settings. Values are stored as text and parsed by the
    caller (the daily token counter is an integer kept as a string).
    """
    key = models.CharField(max_length=200, unique=True)
    value = models.CharField(max_length=500, blank=True)
    description = models.TextField(blank=True)

    last_modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='modified_settings'
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "system_settings"
        verbose_name = "System Setting"
        verbose_name_plural = "System Settings"
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value}"

    @classmethod
    def get_setting(cls, key, default=None):
        """Get a system setting value"""
        try:
            return cls.objects.get(key=key).value
        except cls.DoesNotExist:
            return default

    @classmethod
    def set_setting(cls, key, value, user=None):
        """Set a system setting value"""
        setting, _ = cls.objects.update_or_create(
            key=key,
            defaults={'value': str(value), 'last_modified_by': user},
        )
        return setting
