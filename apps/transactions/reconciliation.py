# apps/transactions/reconciliation.py
"""
Financial reconciliation.

The pure helpers compute derived transaction columns from plain values;
``reconcile`` loads the inputs for one transaction, applies them and saves
inside the caller's database transaction.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from django.db.models import DecimalField, ExpressionWrapper, F, Sum

from core.constants import TWO_PLACES, PaymentStatus

ZERO = Decimal('0.00')


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(TWO_PLACES)


def effective_amount(base_amount: Optional[Decimal], stored_amount: Decimal, line_totals: Iterable[Decimal]) -> Decimal:
    """base (or previously stored amount when base is unset) plus line items"""
    base = base_amount if base_amount is not None else stored_amount
    return to_money(to_money(base) + sum((to_money(t) for t in line_totals), ZERO))


def balance(amount: Decimal, paid_amount: Decimal) -> Decimal:
    return max(to_money(amount) - to_money(paid_amount), ZERO)


def payment_status(amount: Decimal, paid_amount: Decimal) -> str:
    amount = to_money(amount)
    paid_amount = to_money(paid_amount)
    if paid_amount == ZERO:
        return PaymentStatus.UNPAID
    if amount > ZERO and paid_amount >= amount:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


@dataclass(frozen=True)
class ReconcileResult:
    previous_status: str
    previous_paid: Decimal
    payment_status: str
    paid_amount: Decimal

    @property
    def changed(self) -> bool:
        """Only a status or paid-amount change counts as a financial update"""
        return (
            self.previous_status != self.payment_status
            or self.previous_paid != self.paid_amount
        )


def _line_total_expression():
    return ExpressionWrapper(
        F('quantity') * F('unit_price'),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )


def reconcile(transaction, keep_unset_base=False) -> ReconcileResult:
    """
    Recompute amount, paid, balance, status and effective payment mode.

    Callers hold the transaction row lock. A NULL base amount is backfilled
    from the stored amount unless ``keep_unset_base`` is set, which creation
    uses so a transaction without any amount stays distinguishable from a
    free one.
    """
    previous_status = transaction.payment_status
    previous_paid = to_money(transaction.paid_amount)

    line_totals = transaction.items.annotate(
        line_total=_line_total_expression()
    ).values_list('line_total', flat=True)

    stored_amount = to_money(transaction.amount)
    if transaction.base_amount is None and not keep_unset_base:
        transaction.base_amount = stored_amount

    amount = effective_amount(transaction.base_amount, stored_amount, line_totals)
    paid = to_money(transaction.settlements.aggregate(total=Sum('amount'))['total'])

    transaction.amount = amount
    transaction.paid_amount = paid
    transaction.balance_amount = balance(amount, paid)
    transaction.payment_status = payment_status(amount, paid)

    latest = transaction.settlements.order_by('-paid_at', '-id').values_list('payment_mode', flat=True).first()
    if latest:
        transaction.payment_mode = latest

    transaction.save(update_fields=[
        'base_amount', 'amount', 'paid_amount', 'balance_amount',
        'payment_status', 'payment_mode', 'updated_at',
    ])

    return ReconcileResult(
        previous_status=previous_status,
        previous_paid=previous_paid,
        payment_status=transaction.payment_status,
        paid_amount=paid,
    )
