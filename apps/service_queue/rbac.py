# apps/service_queue/rbac.py
"""
Role gate for queue status changes. Pure: no database access.
"""

from core.constants import QueueStatus, UserRoles

# Standard forward flow a cashier may drive
CASHIER_TRANSITIONS = frozenset({
    (QueueStatus.WAITING, QueueStatus.SERVING),
    (QueueStatus.SERVING, QueueStatus.PROCESSING),
    (QueueStatus.SERVING, QueueStatus.COMPLETED),
    (QueueStatus.PROCESSING, QueueStatus.COMPLETED),
})


def is_allowed(role, current_status, target_status):
    """May ``role`` move a customer from ``current_status`` to ``target_status``?"""
    role = UserRoles(role)
    current_status = QueueStatus(current_status)
    target_status = QueueStatus(target_status)

    if role in (UserRoles.SUPER_ADMIN, UserRoles.ADMIN):
        return True
    if role == UserRoles.CASHIER:
        if target_status == QueueStatus.CANCELLED:
            return True
        return (current_status, target_status) in CASHIER_TRANSITIONS
    if role == UserRoles.SALES:
        return False
    raise ValueError(f"Unhandled role: {role}")


def allowed_roles(current_status, target_status):
    return [role.value for role in UserRoles if is_allowed(role, current_status, target_status)]
