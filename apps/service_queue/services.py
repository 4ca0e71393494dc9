# apps/service_queue/services.py
"""
Queue/Counter state machine.

Every mutating operation runs in one database transaction and takes row
locks counter-first, customer-second. Events are broadcast only after the
transaction block has exited.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from apps.audit.services import log_action
from apps.counters.models import Counter
from apps.customers.models import Customer
from apps.customers.services import archive_customer
from apps.realtime import events
from apps.realtime.broadcaster import get_broadcaster
from apps.realtime.payloads import customer_payload
from apps.settings_core.services import SettingsService
from core.constants import (
    ADMIN_ROLES,
    TERMINAL_STATUSES,
    AuditActions,
    QueueEventType,
    QueueStatus,
    UserRoles,
)
from core.exceptions import (
    CounterNotFound,
    CounterUnavailable,
    CustomerNotFound,
    CustomerNotWaiting,
    Forbidden,
    InvalidTransition,
    QueueEmpty,
)
from .models import QueueEvent
from .ordering import order_queue
from .rbac import allowed_roles, is_allowed
from .transitions import is_valid_transition, parse_status

logger = logging.getLogger(__name__)

EVENT_FOR_TARGET = {
    QueueStatus.SERVING: QueueEventType.CALLED,
    QueueStatus.PROCESSING: QueueEventType.PROCESSING_STARTED,
    QueueStatus.COMPLETED: QueueEventType.SERVED,
    QueueStatus.CANCELLED: QueueEventType.CANCELLED,
    QueueStatus.WAITING: QueueEventType.STATUS_CHANGED,
}


def _resolve_role(actor, role):
    if role is not None:
        return UserRoles(role)
    if actor is not None and getattr(actor, 'role', None):
        return UserRoles(actor.role)
    return None


def _user_or_none(actor):
    return actor if getattr(actor, 'pk', None) else None


def _customer_summary(customer):
    return {
        'id': customer.pk,
        'name': customer.name,
        'or_number': customer.or_number,
        'token_number': customer.token_number,
    }


@dataclass
class QueueEntry:
    customer: Customer
    position: Optional[int]
    priority_score: int
    estimated_wait_minutes: int
    counter: Optional[Counter] = None


class QueueService:
    """Customer queue transitions and queue views"""

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or get_broadcaster()

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @staticmethod
    def _lock_customer(customer_id):
        try:
            return Customer.objects.select_for_update().get(pk=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFound(customer_id)

    @staticmethod
    def _lock_counter(counter_id):
        try:
            counter = Counter.objects.select_for_update().get(pk=counter_id)
        except Counter.DoesNotExist:
            raise CounterUnavailable(counter_id, f"Counter {counter_id} does not exist")
        if not counter.is_active:
            raise CounterUnavailable(counter_id, f"Counter {counter.name} is inactive")
        return counter

    @staticmethod
    def _lock_free_counter():
        counter = (
            Counter.objects.select_for_update()
            .filter(is_active=True, current_customer__isnull=True)
            .order_by('display_order', 'name', 'id')
            .first()
        )
        if counter is None:
            raise CounterUnavailable()
        return counter

    @staticmethod
    def _lock_held_counters(customer_id):
        return list(Counter.objects.select_for_update().filter(current_customer_id=customer_id).order_by('id'))

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _check(role, current, target, allow_forced):
        # Role first, so a denied role never learns whether the move was legal.
        if role is not None and not is_allowed(role, current, target):
            raise Forbidden(role, allowed_roles(current, target), current, target)
        if not is_valid_transition(current, target, allow_forced=allow_forced):
            raise InvalidTransition(current, target)

    # ------------------------------------------------------------------
    # Mutation core (caller holds the locks)
    # ------------------------------------------------------------------

    def _apply(self, customer, target, actor=None, counter=None, remark=None, reason='', event_type=None):
        now = timezone.now()
        previous = customer.queue_status

        # Clear stale occupancy before any new assignment.
        for held in Counter.objects.select_for_update().filter(current_customer=customer):
            if counter is not None and held.pk == counter.pk:
                continue
            held.current_customer = None
            held.save(update_fields=['current_customer', 'updated_at'])

        customer.queue_status = target
        if target in TERMINAL_STATUSES:
            customer.served_at = now
            customer.manual_position = None
        elif target == QueueStatus.WAITING:
            customer.served_at = None
        if remark:
            customer.remarks = f"{customer.remarks}\n{remark}".strip()
        customer.save(update_fields=['queue_status', 'served_at', 'manual_position', 'remarks', 'updated_at'])

        if target == QueueStatus.SERVING:
            counter.current_customer = customer
            counter.save(update_fields=['current_customer', 'updated_at'])

        QueueEvent.objects.create(
            customer=customer,
            customer_ref=customer.pk,
            counter=counter,
            actor=_user_or_none(actor),
            event_type=event_type or EVENT_FOR_TARGET[QueueStatus(target)],
            from_status=previous,
            to_status=target,
            reason=reason or '',
            processing_start_at=now if target == QueueStatus.PROCESSING else None,
            processing_end_at=now if previous == QueueStatus.PROCESSING else None,
        )

        if target in TERMINAL_STATUSES:
            archive_customer(customer)

        log_action(
            instance=customer,
            action=AuditActions.STATUS_CHANGE,
            user=_user_or_none(actor),
            metadata={
                'from': previous,
                'to': target,
                'counter_id': counter.pk if counter is not None else None,
                'reason': reason or '',
            },
        )
        return previous

    def _vacate(self, counter, actor, incoming_id):
        """Complete whoever is still serving at ``counter`` before it takes ``incoming_id``"""
        occupant_id = counter.current_customer_id
        if occupant_id is None or occupant_id == incoming_id:
            return None

        occupant = self._lock_customer(occupant_id)
        counter.current_customer = None
        counter.save(update_fields=['current_customer', 'updated_at'])

        if occupant.queue_status != QueueStatus.SERVING:
            return None
        self._apply(occupant, QueueStatus.COMPLETED, actor=actor, reason=f"Counter {counter.name} called next")
        return occupant

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _announce(self, customer, previous, counter=None, update_type=events.STATUS_CHANGED):
        self.broadcaster.emit_queue_status_changed(
            customer.pk,
            customer.queue_status,
            {'previousStatus': previous, 'customer': _customer_summary(customer)},
        )
        payload = {
            'type': update_type,
            'customer': customer_payload(customer),
            'previousStatus': previous,
            'newStatus': customer.queue_status,
        }
        if counter is not None:
            payload['counter'] = {'id': counter.pk, 'name': counter.name}
        self.broadcaster.emit_queue_update(payload)

    # ------------------------------------------------------------------
    # Calling customers
    # ------------------------------------------------------------------

    def _authorize_call(self, role):
        if role is not None and not is_allowed(role, QueueStatus.WAITING, QueueStatus.SERVING):
            raise Forbidden(
                role,
                allowed_roles(QueueStatus.WAITING, QueueStatus.SERVING),
                QueueStatus.WAITING,
                QueueStatus.SERVING,
            )

    def call_next(self, counter_id, actor=None, role=None):
        """Serve the top waiting customer at ``counter_id``"""
        self._authorize_call(_resolve_role(actor, role))

        with transaction.atomic():
            counter = self._lock_counter(counter_id)
            candidate_id = (
                order_queue(Customer.objects.waiting())
                .values_list('pk', flat=True)
                .first()
            )
            if candidate_id is None:
                raise QueueEmpty()

            customer = self._lock_customer(candidate_id)
            if customer.queue_status != QueueStatus.WAITING:
                raise CustomerNotWaiting(customer.pk, customer.queue_status)

            completed = self._vacate(counter, actor, customer.pk)
            previous = self._apply(customer, QueueStatus.SERVING, actor=actor, counter=counter)

        logger.info(f"[QUEUE_CALL] Counter {counter.name} called token {customer.token_number} ({customer.name})")
        if completed is not None:
            self._announce(completed, QueueStatus.SERVING)
        self._announce(customer, previous, counter=counter, update_type=events.CUSTOMER_CALLED)
        return customer

    def call_specific_customer(self, customer_id, counter_id, actor=None, role=None):
        self._authorize_call(_resolve_role(actor, role))

        with transaction.atomic():
            counter = self._lock_counter(counter_id)
            customer = self._lock_customer(customer_id)
            if customer.queue_status != QueueStatus.WAITING:
                raise CustomerNotWaiting(customer.pk, customer.queue_status)

            completed = self._vacate(counter, actor, customer.pk)
            previous = self._apply(customer, QueueStatus.SERVING, actor=actor, counter=counter)

        logger.info(f"[QUEUE_CALL] Counter {counter.name} called token {customer.token_number} out of order")
        if completed is not None:
            self._announce(completed, QueueStatus.SERVING)
        self._announce(customer, previous, counter=counter, update_type=events.CUSTOMER_CALLED)
        return customer

    # ------------------------------------------------------------------
    # General transitions
    # ------------------------------------------------------------------

    def change_status(self, customer_id, target_status, actor=None, role=None,
                      counter_id=None, reason='', remark=None):
        """
        Move a customer to ``target_status``.

        ``role`` (or ``actor.role``) is checked against the role gate before
        the state graph; admins may force any move. Without a role the
        standard graph applies and no role check is made. Moving into
        ``serving`` takes ``counter_id`` or the first free active counter.
        """
        target = parse_status(target_status)
        role = _resolve_role(actor, role)
        allow_forced = role in ADMIN_ROLES

        current = Customer.objects.filter(pk=customer_id).values_list('queue_status', flat=True).first()
        if current is None:
            raise CustomerNotFound(customer_id)
        self._check(role, current, target, allow_forced)

        with transaction.atomic():
            self._lock_held_counters(customer_id)
            counter = None
            if target == QueueStatus.SERVING:
                counter = (
                    self._lock_counter(counter_id) if counter_id is not None
                    else self._lock_free_counter()
                )
            customer = self._lock_customer(customer_id)
            # Re-check against the locked row; another request may have moved it.
            self._check(role, customer.queue_status, target, allow_forced)

            completed = None
            if counter is not None:
                completed = self._vacate(counter, actor, customer.pk)
            previous = self._apply(
                customer, target, actor=actor, counter=counter, remark=remark, reason=reason,
            )

        logger.info(
            f"[QUEUE_STATUS] Customer {customer.pk}: {previous} -> {target} "
            f"(role={role.value if role else 'system'})"
        )
        if completed is not None:
            self._announce(completed, QueueStatus.SERVING)
        self._announce(customer, previous, counter=counter)
        return customer

    def complete_service(self, customer_id, counter_id=None, actor=None, role=None):
        if counter_id is not None and not Counter.objects.filter(
            pk=counter_id, current_customer_id=customer_id
        ).exists():
            logger.warning(f"[QUEUE_STATUS] Counter {counter_id} does not hold customer {customer_id}")
        return self.change_status(customer_id, QueueStatus.COMPLETED, actor=actor, role=role)

    def cancel_service(self, customer_id, reason='', actor=None, role=None):
        """Cancel; the reason is kept on the customer's remarks and the event log"""
        remark = f"Cancelled: {reason}" if reason else None
        return self.change_status(
            customer_id, QueueStatus.CANCELLED, actor=actor, role=role, reason=reason, remark=remark,
        )

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def reorder_queue(self, customer_ids, actor=None):
        """
        Pin the listed customers to their 1-based list index. Only customers
        still waiting are moved.
        """
        ids = list(dict.fromkeys(int(pk) for pk in customer_ids))

        with transaction.atomic():
            locked = {
                c.pk: c for c in Customer.objects.select_for_update().filter(pk__in=ids).order_by('pk')
            }
            for pk in ids:
                if pk not in locked:
                    raise CustomerNotFound(pk)

            moved = []
            for index, pk in enumerate(ids, start=1):
                customer = locked[pk]
                if customer.queue_status != QueueStatus.WAITING:
                    continue
                customer.manual_position = index
                customer.save(update_fields=['manual_position', 'updated_at'])
                QueueEvent.objects.create(
                    customer=customer,
                    customer_ref=customer.pk,
                    actor=_user_or_none(actor),
                    event_type=QueueEventType.REORDERED,
                    from_status=customer.queue_status,
                    to_status=customer.queue_status,
                    reason=f"manual position {index}",
                )
                log_action(
                    instance=customer,
                    action=AuditActions.QUEUE_REORDER,
                    user=_user_or_none(actor),
                    metadata={'manual_position': index},
                )
                moved.append(pk)

        logger.info(f"[QUEUE_REORDER] Pinned {len(moved)} customers")
        self.broadcaster.emit_queue_update({'type': events.QUEUE_REORDERED, 'order': moved})
        return self.get_queue(QueueStatus.WAITING)

    @staticmethod
    def _waiting_ids():
        return list(order_queue(Customer.objects.waiting()).values_list('pk', flat=True))

    def get_position(self, customer_id):
        """1-based rank among waiting customers"""
        status = Customer.objects.filter(pk=customer_id).values_list('queue_status', flat=True).first()
        if status is None:
            raise CustomerNotFound(customer_id)
        if status != QueueStatus.WAITING:
            raise CustomerNotWaiting(customer_id, status)
        return self._waiting_ids().index(int(customer_id)) + 1

    def get_estimated_wait_time(self, customer_id):
        """Minutes until service, assuming the average service time per customer ahead"""
        position = self.get_position(customer_id)
        return self.wait_for_position(position)

    @staticmethod
    def wait_for_position(position, average=None):
        if average is None:
            average = SettingsService.average_service_minutes()
        return (position - 1) * average

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @staticmethod
    def _entries(queryset):
        average = SettingsService.average_service_minutes()
        entries = []
        position = 0
        for customer in order_queue(queryset.select_related('counter'), by_status=True):
            rank = None
            wait = 0
            if customer.queue_status == QueueStatus.WAITING:
                position += 1
                rank = position
                wait = QueueService.wait_for_position(position, average)
            entries.append(QueueEntry(
                customer=customer,
                position=rank,
                priority_score=customer.priority_flags.score,
                estimated_wait_minutes=wait,
                counter=getattr(customer, 'counter', None),
            ))
        return entries

    def get_queue(self, status=None):
        """Active queue (or one status) in service order"""
        queryset = Customer.objects.all()
        if status:
            queryset = queryset.filter(queue_status=parse_status(status))
        else:
            queryset = queryset.active()
        return self._entries(queryset)

    def get_display_queue(self):
        """What the lobby screen shows: serving first, then waiting"""
        return self._entries(
            Customer.objects.filter(queue_status__in=[QueueStatus.SERVING, QueueStatus.WAITING])
        )

    @staticmethod
    def get_queue_statistics():
        now = timezone.now()
        waiting = list(Customer.objects.waiting())
        waits = [(now - c.created_at).total_seconds() / 60 for c in waiting]
        return {
            'total_waiting': len(waiting),
            'average_wait_minutes': round(sum(waits) / len(waits), 1) if waits else 0,
            'longest_wait_minutes': round(max(waits), 1) if waits else 0,
            'priority_customers': sum(1 for c in waiting if c.priority_flags.is_priority),
            'serving_count': Customer.objects.filter(queue_status=QueueStatus.SERVING).count(),
            'processing_count': Customer.objects.filter(queue_status=QueueStatus.PROCESSING).count(),
        }

    # ------------------------------------------------------------------
    # Administrative reset
    # ------------------------------------------------------------------

    def reset_queue(self, actor=None, reason='', role=None):
        """
        Close out every active customer: waiting ones are cancelled, the
        rest completed. Counters are cleared and the daily token counter
        goes back to 1. Running it twice leaves the same state.
        """
        role = _resolve_role(actor, role)
        if role is not None and role not in ADMIN_ROLES:
            raise Forbidden(role, [r.value for r in ADMIN_ROLES])

        cancelled = completed = 0
        with transaction.atomic():
            for counter in Counter.objects.select_for_update().order_by('id'):
                if counter.current_customer_id is not None:
                    counter.current_customer = None
                    counter.save(update_fields=['current_customer', 'updated_at'])

            active = Customer.objects.select_for_update().active().order_by('id')
            for customer in active:
                if customer.queue_status == QueueStatus.WAITING:
                    self._apply(
                        customer, QueueStatus.CANCELLED, actor=actor,
                        remark=f"Queue Reset: {reason}" if reason else "Queue Reset",
                        reason=reason, event_type=QueueEventType.RESET,
                    )
                    cancelled += 1
                else:
                    self._apply(
                        customer, QueueStatus.COMPLETED, actor=actor,
                        reason=reason, event_type=QueueEventType.RESET,
                    )
                    completed += 1

            setting = SettingsService.reset_daily_token_counter(_user_or_none(actor))
            log_action(
                instance=setting,
                action=AuditActions.QUEUE_RESET,
                user=_user_or_none(actor),
                metadata={'cancelled': cancelled, 'completed': completed, 'reason': reason},
            )

        message = f"Queue reset: {cancelled} cancelled, {completed} completed"
        logger.warning(f"[QUEUE_RESET] {message} (reason: {reason or 'none'})")
        self.broadcaster.emit_queue_update({
            'type': events.QUEUE_RESET,
            'cancelled': cancelled,
            'completed': completed,
        })
        return {'cancelled': cancelled, 'completed': completed, 'message': message}


class CounterService:
    """
    Counter administration. Occupancy changes go through the queue
    service so the serving/counter pairing stays intact.
    """

    EDITABLE_FIELDS = {'name', 'display_order', 'is_active'}

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or get_broadcaster()
        self.queue = QueueService(broadcaster=self.broadcaster)

    @staticmethod
    def list_counters(active_only=False):
        counters = Counter.objects.select_related('current_customer')
        if active_only:
            counters = counters.filter(is_active=True)
        return counters.order_by('display_order', 'name')

    @staticmethod
    def _lock(counter_id):
        try:
            return Counter.objects.select_for_update().get(pk=counter_id)
        except Counter.DoesNotExist:
            raise CounterNotFound(counter_id)

    def _send_back(self, counter, actor):
        """Return the counter's serving customer to the waiting line"""
        if counter.current_customer_id is None:
            return None
        occupant = self.queue._lock_customer(counter.current_customer_id)
        counter.current_customer = None
        counter.save(update_fields=['current_customer', 'updated_at'])
        if occupant.queue_status != QueueStatus.SERVING:
            return None
        self.queue._apply(
            occupant, QueueStatus.WAITING, actor=actor,
            reason=f"Counter {counter.name} closed",
        )
        return occupant

    def _announce(self, counter, returned, action):
        if returned is not None:
            self.queue._announce(returned, QueueStatus.SERVING)
        self.broadcaster.emit_queue_update({
            'type': events.COUNTER_UPDATED,
            'action': action,
            'counter': {'id': counter.pk, 'name': counter.name, 'is_active': counter.is_active},
        })

    def create_counter(self, name, display_order=0, is_active=True, actor=None):
        with transaction.atomic():
            counter = Counter.objects.create(name=name, display_order=display_order, is_active=is_active)
            log_action(instance=counter, action=AuditActions.CREATE, user=_user_or_none(actor))
        self._announce(counter, None, 'created')
        return counter

    def update_counter(self, counter_id, actor=None, **changes):
        unknown = set(changes) - self.EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown counter fields: {sorted(unknown)}")

        with transaction.atomic():
            counter = self._lock(counter_id)
            returned = None
            if changes.get('is_active') is False:
                returned = self._send_back(counter, actor)
            for field, value in changes.items():
                setattr(counter, field, value)
            counter.save()
            log_action(instance=counter, action=AuditActions.UPDATE, user=_user_or_none(actor),
                       metadata={'fields': sorted(changes)})

        self._announce(counter, returned, 'updated')
        return counter

    def delete_counter(self, counter_id, actor=None):
        with transaction.atomic():
            counter = self._lock(counter_id)
            returned = self._send_back(counter, actor)
            log_action(instance=counter, action=AuditActions.DELETE, user=_user_or_none(actor))
            counter.delete()
            counter.pk = counter_id

        self._announce(counter, returned, 'deleted')
