"""Hash-chained audit trail written by the services."""

import pytest
from django.core.exceptions import PermissionDenied

from apps.audit.models import AuditLog
from apps.audit.services import log_action, verify_chain
from apps.service_queue.services import QueueService
from core.constants import AuditActions

pytestmark = pytest.mark.django_db


def test_queue_activity_forms_a_valid_chain(broadcaster, make_customer, counter, cashier):
    make_customer()
    customer = QueueService(broadcaster).call_next(counter.pk, actor=cashier)
    QueueService(broadcaster).complete_service(customer.pk, actor=cashier)

    logs = list(AuditLog.objects.order_by('id'))
    assert [log.action for log in logs] == [
        AuditActions.CREATE, AuditActions.STATUS_CHANGE, AuditActions.STATUS_CHANGE,
    ]
    assert logs[1].previous_hash == logs[0].record_hash
    assert logs[2].metadata['to'] == 'completed'
    assert verify_chain()


def test_tampering_breaks_the_chain(make_customer):
    make_customer()
    make_customer()
    AuditLog.objects.filter(pk=AuditLog.objects.order_by('id').first().pk).update(metadata={'token_number': 99})
    assert not verify_chain()


def test_rows_are_immutable(make_customer):
    make_customer()
    log = AuditLog.objects.get()
    with pytest.raises(PermissionDenied):
        log.save()
    with pytest.raises(PermissionDenied):
        log.delete()


def test_unknown_action_rejected(counter):
    with pytest.raises(ValueError):
        log_action(instance=counter, action='TELEPORT')
