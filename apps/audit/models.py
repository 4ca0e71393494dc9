# apps/audit/models.py
from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import models


class AuditLog(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    action = models.CharField(max_length=50, db_index=True)
    model_name = models.CharField(max_length=50)
    object_id = models.CharField(max_length=255)

    after = models.JSONField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    # Hash chain
    previous_hash = models.CharField(max_length=64, blank=True)
    record_hash = models.CharField(max_length=64, editable=False, db_index=True)

    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "audit_logs"
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"
        # strict append-only order
        ordering = ["id"]
        indexes = [
            models.Index(fields=["user", "timestamp"]),
            models.Index(fields=["model_name", "object_id"]),
        ]

    def __str__(self):
        return f"{self.id} | {self.action} | {self.model_name}:{self.object_id}"

    def save(self, *args, **kwargs):
        if self.pk:
            raise PermissionDenied("AuditLog is immutable (update forbidden)")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied("AuditLog cannot be deleted")
