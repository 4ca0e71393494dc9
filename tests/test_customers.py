"""Customer registration and value objects."""

from decimal import Decimal
from unittest import mock

import pytest

from apps.audit.models import AuditLog
from apps.customers.models import Customer
from apps.customers.values import PaymentInfo, PriorityFlags, normalize_payment_mode
from apps.realtime import events
from apps.settings_core.models import SystemSetting
from apps.settings_core.services import SettingsService
from apps.transactions.models import Transaction
from core.constants import DAILY_TOKEN_COUNTER_KEY, AuditActions, QueueStatus
from core.exceptions import InvalidPaymentMode
from core.utils import generate_or_number, local_today


class TestValueObjects:

    def test_priority_weight_and_score(self):
        flags = PriorityFlags(senior_citizen=True, pregnant=True)
        assert flags.weight == 1000
        assert flags.score == 1800
        assert flags.is_priority

    def test_no_flags(self):
        assert PriorityFlags.from_dict(None).weight == 0
        assert not PriorityFlags().is_priority

    def test_unknown_flag_rejected(self):
        with pytest.raises(ValueError):
            PriorityFlags.from_dict({'veteran': True})

    def test_non_boolean_flag_rejected(self):
        with pytest.raises(ValueError):
            PriorityFlags.from_dict({'pwd': 'yes'})

    def test_payment_info_distinguishes_unset_from_zero(self):
        assert PaymentInfo.from_dict({}).amount is None
        assert PaymentInfo.from_dict({'amount': ''}).amount is None
        assert PaymentInfo.from_dict({'amount': '0'}).amount == Decimal('0.00')

    def test_negative_payment_rejected(self):
        with pytest.raises(ValueError):
            PaymentInfo.from_dict({'amount': '-1'})

    @pytest.mark.parametrize('raw, expected', [
        ('GCash', 'gcash'),
        ('bank-transfer', 'bank_transfer'),
        ('Credit Card', 'credit_card'),
        ('', None),
        (None, None),
    ])
    def test_payment_mode_normalisation(self, raw, expected):
        assert normalize_payment_mode(raw) == expected

    def test_unknown_payment_mode(self):
        with pytest.raises(InvalidPaymentMode):
            normalize_payment_mode('paypal')


def test_or_number_format():
    from datetime import date

    assert generate_or_number(date(2025, 7, 21), 7) == 'OR-20250721-0007'


@pytest.mark.django_db
class TestRegistration:

    def test_sequential_tokens_and_or_numbers(self, make_customer):
        first = make_customer()
        second = make_customer()

        assert (first.token_number, second.token_number) == (1, 2)
        assert first.or_number == generate_or_number(local_today(), 1)
        assert first.queue_status == QueueStatus.WAITING
        assert first.service_date == local_today()
        assert SettingsService.get_setting(DAILY_TOKEN_COUNTER_KEY) == '3'

    def test_supplied_or_number_kept(self, make_customer):
        customer = make_customer(or_number='OR-MANUAL-1')
        assert customer.or_number == 'OR-MANUAL-1'

    def test_counter_behind_issued_tokens_is_skipped(self, make_customer):
        make_customer()
        make_customer()
        SettingsService.set_setting(DAILY_TOKEN_COUNTER_KEY, 1)
        assert make_customer().token_number == 3

    def test_token_floor_is_read_after_counter_lock(self, make_customer):
        make_customer()
        make_customer()
        lock_counter = SystemSetting.objects.select_for_update

        def other_registration_lands_first(*args, **kwargs):
            Customer.objects.create(
                name='Other', or_number='OR-OTHER', token_number=3, service_date=local_today(),
            )
            SettingsService.reset_daily_token_counter()
            return lock_counter(*args, **kwargs)

        with mock.patch.object(SystemSetting.objects, 'select_for_update',
                               side_effect=other_registration_lands_first):
            customer = make_customer()

        assert customer.token_number == 4
        assert SettingsService.get_setting(DAILY_TOKEN_COUNTER_KEY) == '5'

    def test_initial_transaction_from_payment_info(self, broadcaster, make_customer, sales_agent,
                                                    django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            customer = make_customer(payment={'amount': '1500', 'mode': 'Maya'}, sales_agent=sales_agent)

        tx = Transaction.objects.get(customer=customer)
        assert tx.or_number == customer.or_number
        assert tx.amount == Decimal('1500.00')
        assert tx.payment_mode == 'maya'
        assert tx.sales_agent_id == sales_agent.pk
        assert broadcaster.names() == [events.QUEUE_UPDATE, events.TRANSACTION_UPDATED]
        assert broadcaster.of(events.QUEUE_UPDATE)[0]['type'] == events.CUSTOMER_REGISTERED

    def test_no_transaction_without_amount(self, make_customer):
        customer = make_customer(payment={'mode': 'cash'})
        assert not Transaction.objects.filter(customer=customer).exists()

    def test_priority_flags_stored_in_columns(self, make_customer):
        customer = make_customer(priority={'pwd': True})
        stored = Customer.objects.get(pk=customer.pk)
        assert stored.priority_pwd is True
        assert stored.priority_flags == PriorityFlags(pwd=True)

    def test_registration_audited(self, make_customer, sales_agent):
        customer = make_customer(sales_agent=sales_agent)
        log = AuditLog.objects.get(action=AuditActions.CREATE, model_name='Customer')
        assert log.object_id == str(customer.pk)
        assert log.user_id == sales_agent.pk
