# apps/audit/services.py

import hashlib
import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from django.forms.models import model_to_dict

from apps.audit.models import AuditLog
from core.constants import AuditActions

logger = logging.getLogger(__name__)


# ======================================================
# SERIALIZATION
# ======================================================

def json_dumps(value) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def serialize_model(instance) -> Optional[Dict[str, Any]]:
    """
    JSON-safe snapshot of a model instance.
    """
    if instance is None:
        return None

    data = {}
    for field, value in model_to_dict(instance).items():
        if hasattr(value, "pk"):
            data[field] = value.pk
        elif hasattr(value, "isoformat"):
            data[field] = value.isoformat()
        elif isinstance(value, Decimal):
            data[field] = str(value)
        elif isinstance(value, (dict, list, str, int, float, bool)) or value is None:
            data[field] = value
        else:
            data[field] = str(value)
    return data


# ======================================================
# HASH CHAIN
# ======================================================

def compute_record_hash(previous_hash: str, payload: Dict[str, Any]) -> str:
    raw = f"{previous_hash}{json_dumps(payload)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _payload(log: AuditLog) -> Dict[str, Any]:
    return {
        "user_id": log.user_id,
        "action": log.action,
        "model": log.model_name,
        "object_id": log.object_id,
        "after": log.after,
        "metadata": log.metadata or {},
    }


# ======================================================
# CORE AUDIT LOGGER (IMMUTABLE)
# ======================================================

@transaction.atomic
def log_action(
    *,
    instance,
    action: str,
    user=None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Create immutable audit log with hash chaining.
    """
    action = action.upper()
    if action not in AuditActions.ALL:
        raise ValueError(f"Invalid audit action: {action}")

    last = (
        AuditLog.objects
        .select_for_update()
        .order_by("-id")
        .only("record_hash")
        .first()
    )
    previous_hash = last.record_hash if last else ""

    log = AuditLog(
        user=user if getattr(user, "pk", None) else None,
        action=action,
        model_name=instance.__class__.__name__,
        object_id=str(instance.pk) if instance.pk else "NEW",
        after=None if action == AuditActions.DELETE else serialize_model(instance),
        metadata=json.loads(json_dumps(metadata or {})),
        previous_hash=previous_hash,
    )
    log.record_hash = compute_record_hash(previous_hash, _payload(log))
    log.save()
    return log


def verify_chain() -> bool:
    """
    Walk the log in insertion order and recompute every hash.
    """
    previous_hash = ""
    for log in AuditLog.objects.order_by("id").iterator():
        if log.previous_hash != previous_hash:
            logger.error(f"[AUDIT] Chain broken at log {log.id}: previous hash mismatch")
            return False
        if compute_record_hash(previous_hash, _payload(log)) != log.record_hash:
            logger.error(f"[AUDIT] Chain broken at log {log.id}: record hash mismatch")
            return False
        previous_hash = log.record_hash
    return True
