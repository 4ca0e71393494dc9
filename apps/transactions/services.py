# apps/transactions/services.py

import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction as db_transaction
from django.db.models import Count, Q, Sum

from apps.audit.services import log_action
from apps.customers.models import Customer
from apps.customers.values import normalize_payment_mode
from apps.realtime import events
from apps.realtime.broadcaster import get_broadcaster
from core.constants import AuditActions, PaymentModes, PaymentStatus
from core.exceptions import (
    CustomerNotFound,
    InvalidSettlement,
    InvalidTransactionItem,
    SettlementExceedsBalance,
    TransactionItemNotFound,
    TransactionNotFound,
)
from core.utils import local_day_bounds, local_today
from .models import PaymentSettlement, Transaction, TransactionItem
from .reconciliation import ZERO, reconcile, to_money

logger = logging.getLogger(__name__)


def lock_transaction(transaction_id):
    try:
        return Transaction.objects.select_for_update().get(pk=transaction_id)
    except Transaction.DoesNotExist:
        raise TransactionNotFound(transaction_id)


def _user_id(user):
    return getattr(user, 'pk', None)


class TransactionService:
    """Transaction ledger operations"""

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or get_broadcaster()

    def insert_transaction(self, customer, amount=None, payment_mode=None,
                           sales_agent=None, cashier=None, or_number=None):
        """
        Insert and reconcile a transaction. Runs inside the caller's
        database transaction and emits nothing.

        ``amount=None`` means "not set": the customer's registration payment
        amount is adopted once, here. An explicit zero is kept as a free
        transaction.
        """
        base_amount = None if amount is None else to_money(amount)
        mode = normalize_payment_mode(payment_mode)

        if base_amount is None and customer.payment_amount is not None:
            base_amount = to_money(customer.payment_amount)
            logger.info(
                f"[TRANSACTION] Using registration amount {base_amount} for customer {customer.pk}"
            )
        if mode is None:
            mode = customer.payment_mode or PaymentModes.CASH

        tx = Transaction.objects.create(
            customer=customer,
            or_number=or_number or self._next_or_number(customer),
            base_amount=base_amount,
            payment_mode=mode,
            sales_agent=sales_agent if sales_agent is not None else customer.sales_agent,
            cashier=cashier,
        )
        reconcile(tx, keep_unset_base=True)
        return tx

    def _next_or_number(self, customer):
        if not Transaction.objects.filter(or_number=customer.or_number).exists():
            return customer.or_number
        taken = Transaction.objects.filter(or_number__startswith=f"{customer.or_number}-").count()
        return f"{customer.or_number}-{taken + 2}"

    def create_transaction(self, customer_id, amount=None, payment_mode=None,
                           sales_agent=None, cashier=None, or_number=None, user=None):
        with db_transaction.atomic():
            try:
                customer = Customer.objects.get(pk=customer_id)
            except Customer.DoesNotExist:
                raise CustomerNotFound(customer_id)

            tx = self.insert_transaction(
                customer,
                amount=amount,
                payment_mode=payment_mode,
                sales_agent=sales_agent,
                cashier=cashier,
                or_number=or_number,
            )
            log_action(instance=tx, action=AuditActions.CREATE, user=user)

        logger.info(f"[TRANSACTION] Created {tx.or_number} for customer {customer_id}")
        self.broadcaster.emit_transaction_update(events.TRANSACTION_CREATED, transaction=tx)
        return tx

    @staticmethod
    def get_transaction(transaction_id):
        try:
            return Transaction.objects.select_related('customer').get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise TransactionNotFound(transaction_id)

    @staticmethod
    def find_by_or_number(or_number):
        try:
            return Transaction.objects.select_related('customer').get(or_number=or_number)
        except Transaction.DoesNotExist:
            raise TransactionNotFound(or_number)

    def update_transaction(self, transaction_id, amount=None, payment_mode=None, cashier=None, user=None):
        """Change base amount, mode or cashier and re-reconcile"""
        with db_transaction.atomic():
            tx = lock_transaction(transaction_id)
            fields = []
            if amount is not None:
                tx.base_amount = to_money(amount)
                fields.append('base_amount')
            if payment_mode is not None:
                tx.payment_mode = normalize_payment_mode(payment_mode)
                fields.append('payment_mode')
            if cashier is not None:
                tx.cashier = cashier
                fields.append('cashier')
            if fields:
                tx.save(update_fields=fields + ['updated_at'])
            result = reconcile(tx)
            log_action(instance=tx, action=AuditActions.UPDATE, user=user,
                       metadata={'fields': fields})

        self.broadcaster.emit_transaction_update(events.TRANSACTION_UPDATED_KIND, transaction=tx)
        if result.changed:
            self.broadcaster.emit_payment_status_update(tx, updated_by=_user_id(user))
        return tx

    def update_payment_status(self, transaction_id, user=None):
        """
        Re-run reconciliation and announce the result only when the status
        or paid amount moved.
        """
        with db_transaction.atomic():
            tx = lock_transaction(transaction_id)
            result = reconcile(tx)

        if result.changed:
            logger.info(
                f"[PAYMENT_STATUS] {tx.or_number}: {result.previous_status} -> {result.payment_status}, "
                f"paid {result.previous_paid} -> {result.paid_amount}"
            )
            self.broadcaster.emit_payment_status_update(tx, updated_by=_user_id(user))
            self.broadcaster.emit_transaction_update(events.PAYMENT_STATUS_CHANGED, transaction=tx)
        return tx

    def delete_transaction(self, transaction_id, user=None):
        """Administrative escape hatch; removes items and settlements too"""
        with db_transaction.atomic():
            tx = lock_transaction(transaction_id)
            log_action(instance=tx, action=AuditActions.DELETE, user=user,
                       metadata={'or_number': tx.or_number, 'paid_amount': str(tx.paid_amount)})
            tx.delete()

        logger.warning(f"[TRANSACTION] Transaction {transaction_id} deleted by {_user_id(user)}")
        self.broadcaster.emit_transaction_update(events.TRANSACTION_DELETED, transaction_id=transaction_id)

    @staticmethod
    def daily_summary(day=None):
        """Totals for one local service day"""
        day = day or local_today()
        start, end = local_day_bounds(day)
        qs = Transaction.objects.filter(transaction_date__gte=start, transaction_date__lt=end)

        totals = qs.aggregate(
            total_amount=Sum('amount'),
            paid_amount=Sum('paid_amount'),
            balance_amount=Sum('balance_amount'),
            count=Count('id'),
            paid_count=Count('id', filter=Q(payment_status=PaymentStatus.PAID)),
            partial_count=Count('id', filter=Q(payment_status=PaymentStatus.PARTIAL)),
            unpaid_count=Count('id', filter=Q(payment_status=PaymentStatus.UNPAID)),
        )

        by_mode = {mode: {'amount': ZERO, 'count': 0} for mode in PaymentModes.values}
        settlements = (
            PaymentSettlement.objects
            .filter(transaction__in=qs)
            .values('payment_mode')
            .annotate(amount=Sum('amount'), count=Count('id'))
        )
        for row in settlements:
            by_mode[row['payment_mode']] = {
                'amount': to_money(row['amount']),
                'count': row['count'],
            }

        by_agent = [
            {
                'sales_agent_id': row['sales_agent_id'],
                'sales_agent_name': row['sales_agent__full_name'],
                'amount': to_money(row['amount']),
                'count': row['count'],
            }
            for row in qs.values('sales_agent_id', 'sales_agent__full_name')
            .annotate(amount=Sum('amount'), count=Count('id'))
            .order_by('sales_agent__full_name')
        ]

        return {
            'date': day.isoformat(),
            'total_transactions': totals['count'],
            'total_amount': to_money(totals['total_amount']),
            'paid_amount': to_money(totals['paid_amount']),
            'balance_amount': to_money(totals['balance_amount']),
            'paid_count': totals['paid_count'],
            'partial_count': totals['partial_count'],
            'unpaid_count': totals['unpaid_count'],
            'payment_modes': by_mode,
            'sales_agents': by_agent,
        }


class TransactionItemService:
    """Line items; every write reconciles the owning transaction"""

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or get_broadcaster()

    @staticmethod
    def list_items(transaction_id):
        if not Transaction.objects.filter(pk=transaction_id).exists():
            raise TransactionNotFound(transaction_id)
        return list(TransactionItem.objects.filter(transaction_id=transaction_id))

    @staticmethod
    def _validate(quantity=None, unit_price=None):
        if quantity is not None and int(quantity) < 1:
            raise InvalidTransactionItem("Quantity must be at least 1")
        if unit_price is not None and to_money(unit_price) < ZERO:
            raise InvalidTransactionItem("Unit price cannot be negative")

    @staticmethod
    def _get_item(tx, item_id):
        try:
            return tx.items.get(pk=item_id)
        except TransactionItem.DoesNotExist:
            raise TransactionItemNotFound(item_id)

    def _announce(self, tx, result, user):
        self.broadcaster.emit_transaction_update(events.TRANSACTION_ITEMS_UPDATED, transaction=tx)
        if result.changed:
            self.broadcaster.emit_payment_status_update(tx, updated_by=_user_id(user))

    def add_item(self, transaction_id, item_name, quantity, unit_price, description='', user=None):
        self._validate(quantity, unit_price)
        with db_transaction.atomic():
            tx = lock_transaction(transaction_id)
            item = TransactionItem.objects.create(
                transaction=tx,
                item_name=item_name,
                description=description or '',
                quantity=int(quantity),
                unit_price=to_money(unit_price),
            )
            result = reconcile(tx)

        self._announce(tx, result, user)
        return tx, item

    def update_item(self, transaction_id, item_id, user=None, **changes):
        allowed = {'item_name', 'description', 'quantity', 'unit_price'}
        unknown = set(changes) - allowed
        if unknown:
            raise InvalidTransactionItem(f"Unknown item fields: {sorted(unknown)}")
        self._validate(changes.get('quantity'), changes.get('unit_price'))

        with db_transaction.atomic():
            tx = lock_transaction(transaction_id)
            item = self._get_item(tx, item_id)
            for field, value in changes.items():
                if field == 'unit_price':
                    value = to_money(value)
                elif field == 'quantity':
                    value = int(value)
                setattr(item, field, value)
            item.save()
            result = reconcile(tx)

        self._announce(tx, result, user)
        return tx, item

    def remove_item(self, transaction_id, item_id, user=None):
        with db_transaction.atomic():
            tx = lock_transaction(transaction_id)
            self._get_item(tx, item_id).delete()
            result = reconcile(tx)

        self._announce(tx, result, user)
        return tx


class PaymentSettlementService:
    """Records payments against transactions"""

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or get_broadcaster()

    @staticmethod
    def _validate_amount(amount):
        try:
            amount = to_money(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidSettlement(f"Invalid settlement amount: {amount!r}")
        if amount <= ZERO:
            raise InvalidSettlement("Settlement amount must be greater than zero")
        if amount > Decimal(str(settings.ESCASHOP_MAX_TRANSACTION_AMOUNT)):
            raise InvalidSettlement(
                f"Settlement amount cannot exceed {settings.ESCASHOP_MAX_TRANSACTION_AMOUNT}"
            )
        return amount

    def create_settlement(self, transaction_id, amount, payment_mode, cashier=None):
        amount = self._validate_amount(amount)
        mode = normalize_payment_mode(payment_mode)
        if mode is None:
            raise InvalidSettlement("Payment mode is required")

        with db_transaction.atomic():
            tx = lock_transaction(transaction_id)
            if amount > to_money(tx.balance_amount):
                raise SettlementExceedsBalance(amount, tx.balance_amount)

            settlement = PaymentSettlement.objects.create(
                transaction=tx,
                amount=amount,
                payment_mode=mode,
                cashier=cashier,
            )
            result = reconcile(tx)
            log_action(
                instance=settlement,
                action=AuditActions.SETTLEMENT,
                user=cashier,
                metadata={'transaction_id': tx.pk, 'payment_status': tx.payment_status},
            )

        logger.info(
            f"[SETTLEMENT] {amount} via {mode} on {tx.or_number}; "
            f"paid {tx.paid_amount}, balance {tx.balance_amount}, status {tx.payment_status}"
        )
        self.broadcaster.emit_transaction_update(
            events.PAYMENT_SETTLEMENT_CREATED, transaction=tx, settlement=settlement
        )
        self.broadcaster.emit_settlement_created(tx, settlement)
        if result.changed:
            self.broadcaster.emit_payment_status_update(tx, updated_by=_user_id(cashier))
        return settlement, tx

    @staticmethod
    def get_settlements(transaction_id):
        if not Transaction.objects.filter(pk=transaction_id).exists():
            raise TransactionNotFound(transaction_id)
        return list(
            PaymentSettlement.objects
            .filter(transaction_id=transaction_id)
            .select_related('cashier')
            .order_by('-paid_at', '-id')
        )
