"""
Audit trail for EscaShop.

Append-only log of queue, counter, transaction and reset actions. Each row
stores a hash of its own content chained to the previous row, so
``verify_chain`` can detect edits made outside ``log_action``.
"""
