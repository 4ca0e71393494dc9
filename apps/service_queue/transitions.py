# apps/service_queue/transitions.py

from core.constants import QueueStatus
from core.exceptions import InvalidQueueStatus

STANDARD_TRANSITIONS = {
    QueueStatus.WAITING: frozenset({QueueStatus.SERVING, QueueStatus.CANCELLED}),
    QueueStatus.SERVING: frozenset({QueueStatus.PROCESSING, QueueStatus.COMPLETED, QueueStatus.CANCELLED}),
    QueueStatus.PROCESSING: frozenset({QueueStatus.COMPLETED, QueueStatus.CANCELLED}),
    QueueStatus.COMPLETED: frozenset(),
    QueueStatus.CANCELLED: frozenset(),
}


def parse_status(value):
    """Case-insensitive status parsing for boundary input"""
    if isinstance(value, QueueStatus):
        return value
    normalized = str(value or '').strip().lower()
    try:
        return QueueStatus(normalized)
    except ValueError:
        raise InvalidQueueStatus(value)


def is_standard_transition(current_status, target_status):
    return QueueStatus(target_status) in STANDARD_TRANSITIONS[QueueStatus(current_status)]


def is_valid_transition(current_status, target_status, allow_forced=False):
    """
    Standard moves are always legal. Forced moves (anything else except
    staying put) are legal only when ``allow_forced`` is set.
    """
    if QueueStatus(current_status) == QueueStatus(target_status):
        return False
    if is_standard_transition(current_status, target_status):
        return True
    return allow_forced
