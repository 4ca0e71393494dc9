# apps/service_queue/ordering.py
"""
Queue ordering.

A manual position always beats algorithmic priority: customers with a
manual position come first by that number, everyone else follows by
priority weight (highest single flag), then arrival time.
"""

from django.db.models import Case, IntegerField, Value, When

from core.constants import PRIORITY_WEIGHTS, QueueStatus

STATUS_RANK = {
    QueueStatus.SERVING: 0,
    QueueStatus.PROCESSING: 1,
    QueueStatus.WAITING: 2,
    QueueStatus.COMPLETED: 3,
    QueueStatus.CANCELLED: 4,
}


def priority_weight_expression():
    return Case(
        When(priority_senior_citizen=True, then=Value(PRIORITY_WEIGHTS['senior_citizen'])),
        When(priority_pwd=True, then=Value(PRIORITY_WEIGHTS['pwd'])),
        When(priority_pregnant=True, then=Value(PRIORITY_WEIGHTS['pregnant'])),
        default=Value(0),
        output_field=IntegerField(),
    )


def status_rank_expression():
    return Case(
        *[When(queue_status=status, then=Value(rank)) for status, rank in STATUS_RANK.items()],
        default=Value(len(STATUS_RANK)),
        output_field=IntegerField(),
    )


def order_queue(queryset, by_status=False):
    queryset = queryset.annotate(
        has_manual=Case(
            When(manual_position__isnull=False, then=Value(0)),
            default=Value(1),
            output_field=IntegerField(),
        ),
        priority_weight=priority_weight_expression(),
    )
    ordering = ['has_manual', 'manual_position', '-priority_weight', 'created_at', 'id']
    if by_status:
        queryset = queryset.annotate(status_rank=status_rank_expression())
        ordering.insert(0, 'status_rank')
    return queryset.order_by(*ordering)
