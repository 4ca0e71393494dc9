"""Reconciliation math and the transaction/item services."""

from decimal import Decimal

import pytest

from apps.customers.models import Customer
from apps.realtime import events
from apps.transactions.models import Transaction
from apps.transactions.reconciliation import balance, effective_amount, payment_status, to_money
from apps.transactions.services import (
    PaymentSettlementService,
    TransactionItemService,
    TransactionService,
)
from core.constants import PaymentModes, PaymentStatus
from core.exceptions import (
    InvalidPaymentMode,
    InvalidTransactionItem,
    TransactionItemNotFound,
    TransactionNotFound,
)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestMoneyHelpers:

    def test_effective_amount_adds_line_items(self):
        assert effective_amount(Decimal('1000'), Decimal('0'), [Decimal('100')]) == Decimal('1100.00')

    def test_unset_base_falls_back_to_stored_amount(self):
        assert effective_amount(None, Decimal('250.00'), []) == Decimal('250.00')

    def test_zero_base_is_a_real_amount(self):
        assert effective_amount(Decimal('0'), Decimal('250.00'), []) == Decimal('0.00')

    def test_balance_never_negative(self):
        assert balance(Decimal('100'), Decimal('150')) == Decimal('0.00')

    @pytest.mark.parametrize('amount, paid, expected', [
        ('100', '0', PaymentStatus.UNPAID),
        ('100', '40', PaymentStatus.PARTIAL),
        ('100', '100', PaymentStatus.PAID),
        ('100', '100.004', PaymentStatus.PAID),
        ('0', '0', PaymentStatus.UNPAID),
    ])
    def test_payment_status(self, amount, paid, expected):
        assert payment_status(Decimal(amount), Decimal(paid)) == expected

    def test_to_money_rounds_to_cents(self):
        assert to_money('19.999') == Decimal('20.00')
        assert to_money(None) == Decimal('0.00')


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.mark.django_db
class TestTransactionService:

    @pytest.fixture
    def service(self, broadcaster):
        return TransactionService(broadcaster=broadcaster)

    @pytest.fixture
    def customer(self, make_customer):
        return make_customer(create_transaction=False)

    def test_items_then_settlement_marks_paid(self, broadcaster, service, customer, cashier):
        tx = service.create_transaction(customer.pk, amount='1000')
        tx, _ = TransactionItemService(broadcaster).add_item(tx.pk, 'Lens coating', 2, '50')
        assert tx.amount == Decimal('1100.00')
        assert tx.balance_amount == Decimal('1100.00')

        _, tx = PaymentSettlementService(broadcaster).create_settlement(tx.pk, '1100', 'cash', cashier=cashier)

        assert tx.payment_status == PaymentStatus.PAID
        assert tx.balance_amount == Decimal('0.00')
        assert tx.paid_amount == Decimal('1100.00')

    def test_registration_amount_used_once_when_unset(self, service, make_customer):
        customer = make_customer(payment={'amount': '750', 'mode': 'gcash'}, create_transaction=False)
        tx = service.create_transaction(customer.pk)
        assert tx.base_amount == Decimal('750.00')
        assert tx.amount == Decimal('750.00')
        assert tx.payment_mode == PaymentModes.GCASH

        Customer.objects.filter(pk=customer.pk).update(payment_amount=Decimal('9999'))
        tx = service.update_payment_status(tx.pk)
        assert tx.amount == Decimal('750.00')

    def test_explicit_zero_is_not_replaced(self, service, make_customer):
        customer = make_customer(payment={'amount': '750'}, create_transaction=False)
        tx = service.create_transaction(customer.pk, amount='0')
        assert tx.base_amount == Decimal('0.00')
        assert tx.amount == Decimal('0.00')
        assert tx.payment_status == PaymentStatus.UNPAID

    def test_no_amount_anywhere_stays_unset(self, service, customer):
        tx = service.create_transaction(customer.pk)
        assert tx.base_amount is None
        assert tx.amount == Decimal('0.00')

    def test_items_not_double_counted_on_unset_base(self, broadcaster, service, customer):
        tx = service.create_transaction(customer.pk)
        items = TransactionItemService(broadcaster)
        tx, _ = items.add_item(tx.pk, 'Frame', 1, '300')
        tx, _ = items.add_item(tx.pk, 'Case', 1, '50')
        assert tx.amount == Decimal('350.00')

    def test_mode_falls_back_to_cash(self, service, customer):
        assert service.create_transaction(customer.pk).payment_mode == PaymentModes.CASH

    def test_invalid_mode(self, service, customer):
        with pytest.raises(InvalidPaymentMode):
            service.create_transaction(customer.pk, payment_mode='cheque')

    def test_mode_spellings_normalised(self, service, customer):
        tx = service.create_transaction(customer.pk, payment_mode='Bank Transfer')
        assert tx.payment_mode == PaymentModes.BANK_TRANSFER

    def test_second_transaction_gets_suffixed_or_number(self, service, make_customer):
        customer = make_customer(payment={'amount': '100'})
        tx = service.create_transaction(customer.pk, amount='20')
        assert tx.or_number == f"{customer.or_number}-2"

    def test_update_amount_reconciles_and_announces(self, broadcaster, service, customer, cashier,
                                                    django_capture_on_commit_callbacks):
        tx = service.create_transaction(customer.pk, amount='500')
        PaymentSettlementService(broadcaster).create_settlement(tx.pk, '200', 'cash')

        with django_capture_on_commit_callbacks(execute=True):
            tx = service.update_transaction(tx.pk, amount='200', user=cashier)

        assert tx.payment_status == PaymentStatus.PAID
        assert events.PAYMENT_STATUS_UPDATED in broadcaster.names()

    def test_update_payment_status_quiet_when_unchanged(self, broadcaster, service, customer,
                                                        django_capture_on_commit_callbacks):
        tx = service.create_transaction(customer.pk, amount='500')
        with django_capture_on_commit_callbacks(execute=True):
            service.update_payment_status(tx.pk)
        assert broadcaster.events == []

    def test_delete(self, broadcaster, service, customer, admin_user, django_capture_on_commit_callbacks):
        tx = service.create_transaction(customer.pk, amount='500')
        with django_capture_on_commit_callbacks(execute=True):
            service.delete_transaction(tx.pk, user=admin_user)

        assert not Transaction.objects.filter(pk=tx.pk).exists()
        payload = broadcaster.of(events.TRANSACTION_UPDATED)[-1]
        assert payload['type'] == events.TRANSACTION_DELETED
        assert payload['transactionId'] == tx.pk

    def test_lookups(self, service, customer):
        tx = service.create_transaction(customer.pk, amount='10')
        assert service.find_by_or_number(tx.or_number).pk == tx.pk
        with pytest.raises(TransactionNotFound):
            service.get_transaction(424242)

    def test_daily_summary(self, broadcaster, service, make_customer, sales_agent):
        a = make_customer(payment={'amount': '1000'}, sales_agent=sales_agent)
        make_customer(payment={'amount': '500'})
        tx = Transaction.objects.get(customer=a)
        PaymentSettlementService(broadcaster).create_settlement(tx.pk, '1000', 'maya')

        summary = service.daily_summary()

        assert summary['total_transactions'] == 2
        assert summary['total_amount'] == Decimal('1500.00')
        assert summary['paid_amount'] == Decimal('1000.00')
        assert summary['paid_count'] == 1
        assert summary['unpaid_count'] == 1
        assert summary['payment_modes']['maya'] == {'amount': Decimal('1000.00'), 'count': 1}
        assert summary['payment_modes']['cash']['count'] == 0


@pytest.mark.django_db
class TestTransactionItems:

    @pytest.fixture
    def tx(self, broadcaster, make_customer):
        customer = make_customer(create_transaction=False)
        return TransactionService(broadcaster).create_transaction(customer.pk, amount='100')

    def test_update_and_remove(self, broadcaster, tx):
        items = TransactionItemService(broadcaster)
        tx, item = items.add_item(tx.pk, 'Tint', 1, '40')
        tx, item = items.update_item(tx.pk, item.pk, quantity=3)
        assert tx.amount == Decimal('220.00')

        tx = items.remove_item(tx.pk, item.pk)
        assert tx.amount == Decimal('100.00')
        assert items.list_items(tx.pk) == []

    def test_items_write_announces(self, broadcaster, tx, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            TransactionItemService(broadcaster).add_item(tx.pk, 'Tint', 1, '40')
        assert broadcaster.of(events.TRANSACTION_UPDATED)[0]['type'] == events.TRANSACTION_ITEMS_UPDATED

    @pytest.mark.parametrize('quantity, price', [(0, '10'), (1, '-5')])
    def test_rejects_bad_items(self, broadcaster, tx, quantity, price):
        with pytest.raises(InvalidTransactionItem):
            TransactionItemService(broadcaster).add_item(tx.pk, 'Bad', quantity, price)

    def test_unknown_item(self, broadcaster, tx):
        with pytest.raises(TransactionItemNotFound):
            TransactionItemService(broadcaster).remove_item(tx.pk, 9999)
