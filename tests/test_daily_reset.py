"""Daily rollover job, its scheduling wrapper and the management command."""

from datetime import timedelta
from unittest import mock

import pytest
from django.core.cache import cache
from django.core.management import call_command
from django.utils import timezone

from apps.counters.models import Counter
from apps.customers.models import Customer, CustomerHistory
from apps.daily_reset.models import DailyQueueHistory, DailyResetLog
from apps.daily_reset.services import DailyQueueResetService, build_snapshot
from apps.daily_reset.tasks import RESET_LOCK_KEY, cleanup_queue_history, run_daily_queue_reset
from apps.realtime import events
from apps.service_queue.models import QueueEvent
from apps.service_queue.services import QueueService
from apps.settings_core.services import SettingsService
from core.constants import DAILY_TOKEN_COUNTER_KEY, QueueStatus
from core.utils import local_today

pytestmark = pytest.mark.django_db


@pytest.fixture
def reset_service(broadcaster):
    return DailyQueueResetService(broadcaster=broadcaster)


def move_to_yesterday(customer):
    yesterday = local_today() - timedelta(days=1)
    Customer.objects.filter(pk=customer.pk).update(
        service_date=yesterday,
        created_at=timezone.now() - timedelta(days=1),
    )
    customer.refresh_from_db()
    return customer


class TestPerformDailyReset:

    def test_closes_previous_day_and_carries_today_forward(
        self, reset_service, broadcaster, make_customer, counter, cashier, django_capture_on_commit_callbacks,
    ):
        stale = move_to_yesterday(make_customer('Stale'))
        done = move_to_yesterday(make_customer('Done'))
        Customer.objects.filter(pk=done.pk).update(queue_status=QueueStatus.COMPLETED)
        today = make_customer('Today')
        QueueService(broadcaster).call_specific_customer(today.pk, counter.pk, actor=cashier)

        with django_capture_on_commit_callbacks(execute=True):
            reset_log = reset_service.perform_daily_reset()

        stale.refresh_from_db()
        today.refresh_from_db()
        counter.refresh_from_db()
        assert stale.queue_status == QueueStatus.COMPLETED
        assert today.queue_status == QueueStatus.WAITING
        assert today.carried_forward is True
        assert counter.current_customer_id is None
        assert SettingsService.get_setting(DAILY_TOKEN_COUNTER_KEY) == '1'

        assert reset_log.success is True
        assert reset_log.customers_processed == 2
        assert reset_log.customers_carried_forward == 1

        history = DailyQueueHistory.objects.get(date=local_today() - timedelta(days=1))
        assert history.total_customers == 2
        assert history.waiting_customers == 1
        assert history.completed_customers == 1
        assert CustomerHistory.objects.filter(archive_date=history.date).count() == 2

        assert broadcaster.of(events.QUEUE_UPDATE)[-1]['type'] == events.DAILY_RESET

    def test_clears_manual_positions(self, reset_service, broadcaster, make_customer):
        customer = make_customer()
        QueueService(broadcaster).reorder_queue([customer.pk])
        reset_service.perform_daily_reset()
        customer.refresh_from_db()
        assert customer.manual_position is None

    def test_second_run_same_day_is_skipped(self, reset_service, make_customer):
        make_customer()
        assert reset_service.perform_daily_reset() is not None
        assert reset_service.perform_daily_reset() is None
        assert DailyResetLog.objects.count() == 1

    def test_force_runs_again(self, reset_service):
        reset_service.perform_daily_reset()
        forced = reset_service.perform_daily_reset(force=True)
        assert forced.forced is True
        assert DailyResetLog.objects.filter(success=True).count() == 2

    def test_history_upserted_on_rerun(self, reset_service, make_customer):
        move_to_yesterday(make_customer())
        reset_service.perform_daily_reset()
        reset_service.perform_daily_reset(force=True)
        assert DailyQueueHistory.objects.count() == 1

    def test_failure_rolls_back(self, reset_service, make_customer, counter, cashier, broadcaster):
        stale = move_to_yesterday(make_customer())
        with mock.patch.object(SettingsService, 'reset_daily_token_counter', side_effect=RuntimeError('disk full')):
            with pytest.raises(RuntimeError):
                reset_service.perform_daily_reset()

        stale.refresh_from_db()
        assert stale.queue_status == QueueStatus.WAITING
        assert not DailyResetLog.objects.exists()
        assert not DailyQueueHistory.objects.exists()


def test_snapshot_counts(make_customer):
    make_customer(priority={'pwd': True})
    second = make_customer()
    Customer.objects.filter(pk=second.pk).update(queue_status=QueueStatus.CANCELLED)

    snapshot = build_snapshot(list(Customer.objects.order_by('id')))

    assert snapshot['total_customers'] == 2
    assert snapshot['waiting_customers'] == 1
    assert snapshot['cancelled_customers'] == 1
    assert snapshot['priority_customers'] == 1
    assert snapshot['peak_queue_length'] >= 1


class TestTasks:

    def test_task_runs_reset(self, make_customer):
        make_customer()
        result = run_daily_queue_reset()
        assert result['status'] == 'done'
        assert result['customers_carried_forward'] == 1

    def test_task_skips_when_done(self):
        run_daily_queue_reset()
        assert run_daily_queue_reset()['status'] == 'skipped'

    def test_task_skips_while_locked(self):
        cache.add(RESET_LOCK_KEY, 1, 60)
        try:
            assert run_daily_queue_reset()['status'] == 'locked'
        finally:
            cache.delete(RESET_LOCK_KEY)
        assert not DailyResetLog.objects.exists()

    def test_task_failure_is_recorded(self):
        with mock.patch.object(
            DailyQueueResetService, 'perform_daily_reset', side_effect=RuntimeError('db timeout'),
        ):
            with pytest.raises(RuntimeError):
                run_daily_queue_reset()

        failed = DailyResetLog.objects.get()
        assert failed.success is False
        assert 'db timeout' in failed.error_message
        assert cache.get(RESET_LOCK_KEY) is None

    def test_cleanup_removes_old_rows(self, make_customer, broadcaster, cashier):
        customer = make_customer()
        QueueService(broadcaster).cancel_service(customer.pk, actor=cashier)
        CustomerHistory.objects.update(archive_date=local_today() - timedelta(days=400))
        QueueEvent.objects.update(created_at=timezone.now() - timedelta(days=400))
        old_day = local_today() - timedelta(days=400)
        DailyQueueHistory.objects.create(date=old_day)
        DailyResetLog.objects.create(reset_date=old_day)
        recent = DailyResetLog.objects.create(reset_date=local_today() - timedelta(days=10))

        result = cleanup_queue_history(365)

        assert result['customer_history_deleted'] == 1
        assert result['queue_events_deleted'] == 1
        assert result['daily_history_deleted'] == 1
        assert result['reset_logs_deleted'] == 1
        assert not CustomerHistory.objects.exists()
        assert not DailyQueueHistory.objects.exists()
        assert list(DailyResetLog.objects.all()) == [recent]


def test_management_command(make_customer, capsys):
    make_customer()
    call_command('reset_daily_queue')
    call_command('reset_daily_queue')
    call_command('reset_daily_queue', '--force')

    out = capsys.readouterr().out
    assert 'carried forward' in out
    assert 'already ran' in out
    assert DailyResetLog.objects.filter(success=True).count() == 2


def test_counters_left_active(reset_service, counter):
    reset_service.perform_daily_reset()
    assert Counter.objects.get(pk=counter.pk).is_active
