# core/exceptions.py
"""
Typed domain errors.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
boundary can render it without knowing the concrete class.
"""


class EscaShopError(Exception):
    code = 'error'
    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def detail(self):
        return {}


# Validation

class InvalidQueueStatus(EscaShopError):
    code = 'invalid_queue_status'
    default_message = 'Unrecognised queue status'

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid queue status: {value!r}")

    def detail(self):
        return {'value': self.value}


class InvalidPaymentMode(EscaShopError):
    code = 'invalid_payment_mode'

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid payment mode: {value!r}")

    def detail(self):
        return {'value': self.value}


class InvalidSettlement(EscaShopError):
    code = 'invalid_settlement'


class InvalidTransactionItem(EscaShopError):
    code = 'invalid_transaction_item'


# Not found

class NotFound(EscaShopError):
    status_code = 404
    code = 'not_found'


class CustomerNotFound(NotFound):
    code = 'customer_not_found'

    def __init__(self, customer_id):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} not found")

    def detail(self):
        return {'customer_id': self.customer_id}


class CounterNotFound(NotFound):
    code = 'counter_not_found'

    def __init__(self, counter_id):
        self.counter_id = counter_id
        super().__init__(f"Counter {counter_id} not found")

    def detail(self):
        return {'counter_id': self.counter_id}


class TransactionNotFound(NotFound):
    code = 'transaction_not_found'

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")

    def detail(self):
        return {'transaction_id': self.transaction_id}


class TransactionItemNotFound(NotFound):
    code = 'transaction_item_not_found'

    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f"Transaction item {item_id} not found")

    def detail(self):
        return {'item_id': self.item_id}


# State

class StateError(EscaShopError):
    status_code = 409
    code = 'state_error'


class QueueEmpty(StateError):
    code = 'queue_empty'
    default_message = 'No customers waiting in queue'


class CustomerNotWaiting(StateError):
    code = 'customer_not_waiting'

    def __init__(self, customer_id, current_status):
        self.customer_id = customer_id
        self.current_status = current_status
        super().__init__(
            f"Customer {customer_id} is not waiting (current status: {current_status})"
        )

    def detail(self):
        return {'customer_id': self.customer_id, 'current_status': self.current_status}


class InvalidTransition(StateError):
    code = 'invalid_transition'

    def __init__(self, current_status, requested_status):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot move from {current_status} to {requested_status}"
        )

    def detail(self):
        return {
            'current_status': self.current_status,
            'requested_status': self.requested_status,
        }


class CounterUnavailable(StateError):
    code = 'counter_unavailable'

    def __init__(self, counter_id=None, reason=None):
        self.counter_id = counter_id
        if reason is None:
            reason = (
                f"Counter {counter_id} is not available"
                if counter_id is not None else "No counter is available"
            )
        super().__init__(reason)

    def detail(self):
        return {'counter_id': self.counter_id}


class SettlementExceedsBalance(StateError):
    code = 'settlement_exceeds_balance'

    def __init__(self, amount, balance):
        self.amount = amount
        self.balance = balance
        super().__init__("Settlement amount exceeds remaining balance")

    def detail(self):
        return {'amount': str(self.amount), 'balance_amount': str(self.balance)}


# Authorization

class Forbidden(EscaShopError):
    status_code = 403
    code = 'forbidden'

    def __init__(self, role, allowed_roles, current_status=None, requested_status=None):
        self.role = role
        self.allowed_roles = list(allowed_roles)
        self.current_status = current_status
        self.requested_status = requested_status
        if current_status is None and requested_status is None:
            message = f"Role {role} may not perform this operation"
        else:
            message = f"Role {role} may not move a customer from {current_status} to {requested_status}"
        super().__init__(message)

    def detail(self):
        return {
            'role': self.role,
            'allowed_roles': self.allowed_roles,
            'current_status': self.current_status,
            'requested_status': self.requested_status,
        }
