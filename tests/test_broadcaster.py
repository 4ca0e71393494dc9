"""Event broadcaster contract."""

import logging

import pytest
from django.test import override_settings

from apps.realtime import events
from apps.realtime.broadcaster import NullBroadcaster, SignalBroadcaster, get_broadcaster
from apps.realtime.signals import realtime_event
from core.constants import QueueStatus
from tests.conftest import RecordingBroadcaster


class Failing(RecordingBroadcaster):
    def send(self, event, payload):
        raise ConnectionError('gateway down')


class TestBestEffort:

    def test_send_failure_is_logged_and_swallowed(self, caplog):
        with caplog.at_level(logging.ERROR, logger='apps.realtime'):
            assert Failing(lambda: 0).emit_queue_update({'type': events.STATUS_CHANGED}) is False
        assert 'Failed to publish queue:update' in caplog.text

    def test_processing_count_failure_defaults_to_zero(self):
        def broken():
            raise RuntimeError('db gone')

        recorder = RecordingBroadcaster(processing_count_provider=broken)
        recorder.emit_queue_update({'type': events.STATUS_CHANGED})

        assert recorder.of(events.QUEUE_UPDATE)[0]['processingCount'] == 0


class TestPayloads:

    def test_queue_update_carries_count_and_sound_flag(self):
        recorder = RecordingBroadcaster(processing_count_provider=lambda: 3)
        recorder.emit_queue_update({'type': events.STATUS_CHANGED, 'newStatus': QueueStatus.PROCESSING})

        payload = recorder.of(events.QUEUE_UPDATE)[0]
        assert payload['processingCount'] == 3
        assert payload['suppressSound'] is True
        assert 'timestamp' in payload

    def test_status_changed_sound_on_for_serving(self):
        recorder = RecordingBroadcaster(lambda: 0)
        recorder.emit_queue_status_changed(5, QueueStatus.SERVING, {'previousStatus': 'waiting'})

        payload = recorder.of(events.QUEUE_STATUS_CHANGED)[0]
        assert payload['id'] == 5
        assert payload['suppressSound'] is False
        assert payload['previousStatus'] == 'waiting'

    def test_transaction_update_by_id_only(self):
        recorder = RecordingBroadcaster(lambda: 0)
        recorder.emit_transaction_update(events.TRANSACTION_DELETED, transaction_id=9)
        payload = recorder.of(events.TRANSACTION_UPDATED)[0]
        assert payload['type'] == events.TRANSACTION_DELETED
        assert payload['transactionId'] == 9
        assert 'transaction' not in payload


class TestSignalBroadcaster:

    def test_receivers_get_event_and_payload(self):
        received = []

        def receiver(sender, event, payload, **kwargs):
            received.append((event, payload))

        realtime_event.connect(receiver)
        try:
            SignalBroadcaster(lambda: 1).emit_queue_update({'type': events.QUEUE_RESET})
        finally:
            realtime_event.disconnect(receiver)

        assert received[0][0] == events.QUEUE_UPDATE
        assert received[0][1]['type'] == events.QUEUE_RESET

    def test_failing_receiver_does_not_stop_others(self, caplog):
        received = []

        def bad(sender, **kwargs):
            raise ValueError('boom')

        def good(sender, event, payload, **kwargs):
            received.append(event)

        realtime_event.connect(bad)
        realtime_event.connect(good)
        try:
            with caplog.at_level(logging.ERROR, logger='apps.realtime'):
                assert SignalBroadcaster(lambda: 0).emit_queue_update({'type': events.QUEUE_RESET})
        finally:
            realtime_event.disconnect(bad)
            realtime_event.disconnect(good)

        assert received == [events.QUEUE_UPDATE]
        assert 'boom' in caplog.text


def test_configured_broadcaster():
    assert isinstance(get_broadcaster(), NullBroadcaster)
    with override_settings(REALTIME_BROADCASTER='apps.realtime.broadcaster.SignalBroadcaster'):
        assert isinstance(get_broadcaster(), SignalBroadcaster)


@pytest.mark.django_db
def test_default_processing_count_reads_customers(make_customer):
    customer = make_customer()
    customer.queue_status = QueueStatus.PROCESSING
    customer.save()
    assert SignalBroadcaster().processing_count() == 1
