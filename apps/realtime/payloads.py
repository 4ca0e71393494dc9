# apps/realtime/payloads.py
"""
Plain-dict snapshots of ledger rows for event payloads.

Money is rendered as a string, the same way the REST API renders decimals.
"""


def _money(value):
    return None if value is None else str(value)


def _iso(value):
    return value.isoformat() if value else None


def customer_payload(customer):
    return {
        'id': customer.pk,
        'name': customer.name,
        'or_number': customer.or_number,
        'token_number': customer.token_number,
        'queue_status': customer.queue_status,
        'priority_flags': customer.priority_flags.as_dict(),
        'manual_position': customer.manual_position,
    }


def transaction_payload(transaction):
    return {
        'id': transaction.pk,
        'customer_id': transaction.customer_id,
        'or_number': transaction.or_number,
        'amount': _money(transaction.amount),
        'base_amount': _money(transaction.base_amount),
        'paid_amount': _money(transaction.paid_amount),
        'balance_amount': _money(transaction.balance_amount),
        'payment_status': transaction.payment_status,
        'payment_mode': transaction.payment_mode,
        'sales_agent_id': transaction.sales_agent_id,
        'cashier_id': transaction.cashier_id,
        'transaction_date': _iso(transaction.transaction_date),
    }


def settlement_payload(settlement):
    return {
        'id': settlement.pk,
        'transaction_id': settlement.transaction_id,
        'amount': _money(settlement.amount),
        'payment_mode': settlement.payment_mode,
        'cashier_id': settlement.cashier_id,
        'paid_at': _iso(settlement.paid_at),
    }
