"""HTTP boundary: routing, validation and error rendering."""

from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError

from apps.customers.models import Customer
from apps.service_queue.services import QueueService
from apps.transactions.models import Transaction
from core.constants import QueueStatus

pytestmark = pytest.mark.django_db


class TestQueueEndpoints:

    def test_requires_authentication(self, api_client):
        assert api_client.get('/api/queue/').status_code == 401

    def test_register_and_list(self, client_for, sales_agent):
        client = client_for(sales_agent)
        response = client.post('/api/customers/', {
            'name': 'Ana Cruz',
            'priority_flags': {'senior_citizen': True},
            'payment_info': {'amount': '1200.00', 'mode': 'GCash'},
        }, format='json')

        assert response.status_code == 201
        assert response.data['token_number'] == 1
        assert response.data['priority_score'] == 1000
        assert Transaction.objects.get(customer_id=response.data['id']).amount == Decimal('1200.00')

        queue = client.get('/api/queue/').data
        assert queue[0]['customer']['name'] == 'Ana Cruz'
        assert queue[0]['position'] == 1

    def test_registration_rejects_bad_flags(self, client_for, sales_agent):
        response = client_for(sales_agent).post('/api/customers/', {
            'name': 'Ana', 'priority_flags': {'vip': True},
        }, format='json')
        assert response.status_code == 400

    def test_call_next_and_empty_queue(self, client_for, cashier, counter, make_customer):
        client = client_for(cashier)
        make_customer()

        first = client.post('/api/queue/call-next/', {'counter_id': counter.pk}, format='json')
        empty = client.post('/api/queue/call-next/', {'counter_id': counter.pk}, format='json')

        assert first.status_code == 200
        assert first.data['queue_status'] == QueueStatus.SERVING
        assert empty.status_code == 409
        assert empty.data['error'] == 'queue_empty'

    def test_cashier_forced_move_is_forbidden(self, client_for, cashier, admin_user, make_customer):
        customer = make_customer()
        Customer.objects.filter(pk=customer.pk).update(queue_status=QueueStatus.COMPLETED)

        denied = client_for(cashier).post(f'/api/queue/{customer.pk}/status/', {'status': 'Waiting'}, format='json')
        assert denied.status_code == 403
        assert denied.data['error'] == 'forbidden'
        assert denied.data['role'] == 'cashier'
        assert denied.data['allowed_roles'] == ['super_admin', 'admin']

        allowed = client_for(admin_user).post(f'/api/queue/{customer.pk}/status/', {'status': 'WAITING'}, format='json')
        assert allowed.status_code == 200
        assert allowed.data['queue_status'] == 'waiting'

    def test_unknown_status_is_400(self, client_for, admin_user, make_customer):
        customer = make_customer()
        response = client_for(admin_user).post(f'/api/queue/{customer.pk}/status/', {'status': 'done'}, format='json')
        assert response.status_code == 400
        assert 'status' in response.data

    def test_cashier_completion_and_cancel_rules(self, client_for, cashier, make_customer):
        customer = make_customer()
        response = client_for(cashier).post('/api/queue/complete/', {'customer_id': customer.pk}, format='json')
        assert response.status_code == 403

        customer_b = make_customer()
        Customer.objects.filter(pk=customer_b.pk).update(queue_status=QueueStatus.CANCELLED)
        response = client_for(cashier).post('/api/queue/cancel/', {'customer_id': customer_b.pk}, format='json')
        assert response.status_code == 409
        assert response.data['error'] == 'invalid_transition'

    def test_position(self, client_for, sales_agent, make_customer):
        make_customer()
        second = make_customer()
        waiting_ids = QueueService._waiting_ids

        with mock.patch.object(QueueService, '_waiting_ids', side_effect=waiting_ids) as ordered:
            response = client_for(sales_agent).get(f'/api/queue/{second.pk}/position/')

        assert response.data['position'] == 2
        assert response.data['estimated_wait_minutes'] == 15
        assert ordered.call_count == 1

    def test_reset_is_admin_only(self, client_for, cashier, admin_user, make_customer):
        make_customer()
        assert client_for(cashier).post('/api/queue/reset/', {}, format='json').status_code == 403
        response = client_for(admin_user).post('/api/queue/reset/', {'reason': 'closing'}, format='json')
        assert response.status_code == 200
        assert response.data['cancelled'] == 1

    def test_database_errors_are_opaque(self, client_for, cashier, counter):
        with mock.patch('apps.service_queue.services.QueueService.call_next', side_effect=DatabaseError('deadlock')):
            response = client_for(cashier).post('/api/queue/call-next/', {'counter_id': counter.pk}, format='json')
        assert response.status_code == 500
        assert response.data == {'error': 'internal_error', 'message': 'Internal error, please retry'}


class TestCounterEndpoints:

    def test_admin_creates_counter(self, client_for, admin_user):
        response = client_for(admin_user).post('/api/counters/', {'name': 'Counter 9', 'display_order': 9}, format='json')
        assert response.status_code == 201
        assert response.data['current_customer'] is None

    def test_cashier_cannot_edit_counters(self, client_for, cashier, counter):
        response = client_for(cashier).patch(f'/api/counters/{counter.pk}/', {'is_active': False}, format='json')
        assert response.status_code == 403

    def test_list_shows_occupant(self, client_for, cashier, counter, make_customer):
        make_customer(name='Ben')
        client = client_for(cashier)
        client.post('/api/queue/call-next/', {'counter_id': counter.pk}, format='json')
        listing = client.get('/api/counters/').data
        rows = listing['results'] if isinstance(listing, dict) else listing
        assert rows[0]['current_customer_name'] == 'Ben'


class TestTransactionEndpoints:

    @pytest.fixture
    def tx(self, make_customer):
        customer = make_customer(payment={'amount': '1000', 'mode': 'cash'})
        return Transaction.objects.get(customer=customer)

    def test_items_and_settlement(self, client_for, cashier, tx):
        client = client_for(cashier)
        item = client.post(f'/api/transactions/{tx.pk}/items/', {
            'item_name': 'Anti-glare', 'quantity': 2, 'unit_price': '50.00',
        }, format='json')
        assert item.status_code == 201
        assert item.data['amount'] == '1100.00'

        paid = client.post(f'/api/transactions/{tx.pk}/settlements/', {
            'amount': '1100.00', 'payment_mode': 'Maya',
        }, format='json')
        assert paid.status_code == 201
        assert paid.data['transaction']['payment_status'] == 'paid'
        assert paid.data['transaction']['balance_amount'] == '0.00'

    def test_overpayment_is_409(self, client_for, cashier, tx):
        response = client_for(cashier).post(f'/api/transactions/{tx.pk}/settlements/', {
            'amount': '1000.01', 'payment_mode': 'cash',
        }, format='json')
        assert response.status_code == 409
        assert response.data['message'] == 'Settlement amount exceeds remaining balance'

    def test_sales_cannot_settle(self, client_for, sales_agent, tx):
        response = client_for(sales_agent).post(f'/api/transactions/{tx.pk}/settlements/', {
            'amount': '10', 'payment_mode': 'cash',
        }, format='json')
        assert response.status_code == 403

    def test_filter_by_payment_mode(self, client_for, cashier, tx, make_customer):
        make_customer(payment={'amount': '50', 'mode': 'gcash'})
        response = client_for(cashier).get('/api/transactions/', {'payment_mode': 'GCash'})
        assert [row['payment_mode'] for row in response.data['results']] == ['gcash']

    def test_unknown_payment_mode_filter_rejected(self, client_for, cashier, tx):
        response = client_for(cashier).get('/api/transactions/', {'payment_mode': 'barter'})
        assert response.status_code == 400
        assert response.data['error'] == 'invalid_payment_mode'
        assert response.data['value'] == 'barter'

    def test_only_admin_deletes(self, client_for, cashier, admin_user, tx):
        assert client_for(cashier).delete(f'/api/transactions/{tx.pk}/').status_code == 403
        assert client_for(admin_user).delete(f'/api/transactions/{tx.pk}/').status_code == 204

    def test_daily_summary(self, client_for, cashier, tx):
        response = client_for(cashier).get('/api/transactions/daily-summary/')
        assert response.status_code == 200
        assert response.data['total_transactions'] == 1

    def test_missing_transaction_is_404(self, client_for, cashier):
        response = client_for(cashier).get('/api/transactions/9999/settlements/')
        assert response.status_code == 404
        assert response.data['error'] == 'transaction_not_found'


def test_manual_daily_reset(client_for, admin_user, cashier):
    assert client_for(cashier).post('/api/daily-reset/run/', {}, format='json').status_code == 403
    client = client_for(admin_user)
    assert client.post('/api/daily-reset/run/', {}, format='json').status_code == 201
    assert client.post('/api/daily-reset/run/', {}, format='json').data['status'] == 'skipped'
    assert len(client.get('/api/daily-reset/logs/').data) == 1
