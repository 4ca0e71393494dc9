# apps/realtime/events.py
"""Event names and update kinds shared with the front-end clients."""

QUEUE_STATUS_CHANGED = 'queue:status_changed'
QUEUE_UPDATE = 'queue:update'
TRANSACTION_UPDATED = 'transactionUpdated'
PAYMENT_STATUS_UPDATED = 'payment_status_updated'
SETTLEMENT_CREATED = 'settlementCreated'

# queue:update types
CUSTOMER_REGISTERED = 'customer_registered'
CUSTOMER_CALLED = 'customer_called'
STATUS_CHANGED = 'status_changed'
QUEUE_REORDERED = 'queue_reordered'
QUEUE_RESET = 'queue_reset'
DAILY_RESET = 'daily_reset'
COUNTER_UPDATED = 'counter_updated'

# transactionUpdated types
TRANSACTION_CREATED = 'transaction_created'
TRANSACTION_UPDATED_KIND = 'transaction_updated'
TRANSACTION_DELETED = 'transaction_deleted'
TRANSACTION_ITEMS_UPDATED = 'transaction_items_updated'
PAYMENT_SETTLEMENT_CREATED = 'payment_settlement_created'
PAYMENT_STATUS_CHANGED = 'payment_status_updated'
