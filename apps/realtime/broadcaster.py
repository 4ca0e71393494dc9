# apps/realtime/broadcaster.py
"""
Event Broadcaster.

Services receive a broadcaster at construction time and call the ``emit_*``
methods after their own atomic block exits; inside a caller's outer
transaction delivery waits for its commit. Emission is best effort: every
failure is logged and swallowed so a broken listener can never undo or block
a committed write.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from core.constants import QueueStatus
from . import events
from .payloads import settlement_payload, transaction_payload
from .signals import realtime_event

logger = logging.getLogger(__name__)


def count_processing_customers():
    from apps.customers.models import Customer

    return Customer.objects.filter(queue_status=QueueStatus.PROCESSING).count()


def _now():
    return timezone.now().isoformat()


class Broadcaster:
    """
    Base broadcaster. Subclasses implement ``send(event, payload)``.
    """

    def __init__(self, processing_count_provider=None):
        self.processing_count_provider = processing_count_provider or count_processing_customers

    def send(self, event, payload):
        raise NotImplementedError

    def publish(self, event, payload):
        """
        Deliver the event, or queue it until the enclosing database
        transaction commits. Nothing is delivered for a rolled-back write.
        """
        if transaction.get_connection().in_atomic_block:
            transaction.on_commit(lambda: self.deliver(event, payload))
            return True
        return self.deliver(event, payload)

    def deliver(self, event, payload):
        try:
            self.send(event, payload)
            return True
        except Exception:
            logger.exception(f"[REALTIME] Failed to publish {event}")
            return False

    def processing_count(self):
        try:
            return int(self.processing_count_provider())
        except Exception:
            logger.exception("[REALTIME] Could not count processing customers, defaulting to 0")
            return 0

    # Queue events

    def emit_queue_status_changed(self, customer_id, new_status, extra=None):
        payload = {
            'id': customer_id,
            'newStatus': new_status,
            'timestamp': _now(),
            'suppressSound': new_status == QueueStatus.PROCESSING,
        }
        if extra:
            payload.update(extra)
        return self.publish(events.QUEUE_STATUS_CHANGED, payload)

    def emit_queue_update(self, payload):
        data = dict(payload)
        data.setdefault('timestamp', _now())
        data['processingCount'] = self.processing_count()
        data['suppressSound'] = data.get('newStatus') == QueueStatus.PROCESSING
        return self.publish(events.QUEUE_UPDATE, data)

    # Financial events

    def emit_transaction_update(self, kind, transaction=None, settlement=None, transaction_id=None):
        payload = {'type': kind, 'timestamp': _now()}
        if transaction is not None:
            payload['transaction'] = transaction_payload(transaction)
            payload['transactionId'] = transaction.pk
        elif transaction_id is not None:
            payload['transactionId'] = transaction_id
        if settlement is not None:
            payload['settlement'] = settlement_payload(settlement)
        return self.publish(events.TRANSACTION_UPDATED, payload)

    def emit_payment_status_update(self, transaction, updated_by=None):
        payload = {
            'transactionId': transaction.pk,
            'payment_status': transaction.payment_status,
            'balance_amount': str(transaction.balance_amount),
            'paid_amount': str(transaction.paid_amount),
            'customer_id': transaction.customer_id,
            'or_number': transaction.or_number,
            'timestamp': _now(),
        }
        if updated_by is not None:
            payload['updatedBy'] = updated_by
        return self.publish(events.PAYMENT_STATUS_UPDATED, payload)

    def emit_settlement_created(self, transaction, settlement):
        payload = {
            'transaction_id': transaction.pk,
            'settlement': settlement_payload(settlement),
            'transaction': transaction_payload(transaction),
        }
        return self.publish(events.SETTLEMENT_CREATED, payload)


class SignalBroadcaster(Broadcaster):
    """Fans events out through the ``realtime_event`` Django signal."""

    def send(self, event, payload):
        responses = realtime_event.send_robust(sender=self.__class__, event=event, payload=payload)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    f"[REALTIME] Receiver {getattr(receiver, '__qualname__', receiver)} "
                    f"failed on {event}: {response!r}"
                )


class NullBroadcaster(Broadcaster):
    """Drops every event."""

    def send(self, event, payload):
        logger.debug(f"[REALTIME] Dropped {event}")


def get_broadcaster():
    """Broadcaster configured by ``REALTIME_BROADCASTER``"""
    return import_string(settings.REALTIME_BROADCASTER)()
