# core/mixins/timestamps.py
from django.db import models
from django.utils import timezone


class TimeStampedMixin(models.Model):
    """Adds created/updated timestamps to models"""
    created_at = models.DateTimeField(default=timezone.now, db_index=True, editable=False)
    updated_at = models.DateTimeField(auto_now=True, editable=False)

    class Meta:
        abstract = True
