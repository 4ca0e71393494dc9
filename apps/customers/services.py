# apps/customers/services.py

import logging

from django.db import transaction

from apps.audit.services import log_action
from apps.realtime import events
from apps.realtime.broadcaster import get_broadcaster
from apps.realtime.payloads import customer_payload
from apps.settings_core.services import SettingsService
from apps.transactions.services import TransactionService
from core.constants import AuditActions
from core.exceptions import CustomerNotFound
from core.utils import generate_or_number, local_today
from .models import Customer, CustomerHistory
from .values import PaymentInfo, PriorityFlags

logger = logging.getLogger(__name__)


def archive_customer(customer, archive_date=None):
    """Upsert the customer's snapshot for ``archive_date`` (default: their service day)"""
    archive_date = archive_date or customer.service_date or local_today()
    history, _ = CustomerHistory.objects.update_or_create(
        original_customer_id=customer.pk,
        archive_date=archive_date,
        defaults={
            'name': customer.name,
            'or_number': customer.or_number,
            'token_number': customer.token_number,
            'queue_status': customer.queue_status,
            'priority_score': customer.priority_flags.score,
            'payment_amount': customer.payment_amount,
            'remarks': customer.remarks,
            'carried_forward': customer.carried_forward,
            'customer_created_at': customer.created_at,
            'served_at': customer.served_at,
        },
    )
    return history


class CustomerService:
    """Customer registration and lookup"""

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or get_broadcaster()

    @staticmethod
    def get_customer(customer_id):
        try:
            return Customer.objects.get(pk=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFound(customer_id)

    def register(self, name, priority_flags=None, payment_info=None, sales_agent=None,
                 create_transaction=True, **details):
        """
        Register a customer at the back of today's queue.

        ``priority_flags`` and ``payment_info`` accept either the value
        objects or plain dicts. When ``create_transaction`` is set and the
        payment info carries an amount, the initial transaction is created in
        the same database transaction.
        """
        if not isinstance(priority_flags, PriorityFlags):
            priority_flags = PriorityFlags.from_dict(priority_flags)
        if not isinstance(payment_info, PaymentInfo):
            payment_info = PaymentInfo.from_dict(payment_info)

        transactions = TransactionService(broadcaster=self.broadcaster)
        tx = None

        with transaction.atomic():
            service_date = local_today()
            # Tokens already issued today stay taken even after a manual queue reset.
            token = SettingsService.take_daily_token(service_date)
            or_number = details.pop('or_number', None) or generate_or_number(service_date, token)

            customer = Customer(
                name=name,
                or_number=or_number,
                sales_agent=sales_agent,
                payment_amount=payment_info.amount,
                payment_mode=payment_info.mode or '',
                token_number=token,
                service_date=service_date,
                **details,
            )
            customer.priority_flags = priority_flags
            customer.save()

            if create_transaction and payment_info.amount is not None:
                tx = transactions.insert_transaction(customer, sales_agent=sales_agent)

            log_action(
                instance=customer,
                action=AuditActions.CREATE,
                user=sales_agent,
                metadata={'token_number': token},
            )

        logger.info(
            f"[CUSTOMER] Registered {customer.name} as token {token} "
            f"(priority score {priority_flags.score})"
        )
        self.broadcaster.emit_queue_update({
            'type': events.CUSTOMER_REGISTERED,
            'customer': customer_payload(customer),
            'newStatus': customer.queue_status,
        })
        if tx is not None:
            self.broadcaster.emit_transaction_update(events.TRANSACTION_CREATED, transaction=tx)
        return customer
