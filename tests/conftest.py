"""
Shared fixtures: users per role, counters, a customer factory and a
broadcaster that records what it publishes.
"""

import pytest
from rest_framework.test import APIClient

from apps.counters.models import Counter
from apps.customers.services import CustomerService
from apps.realtime.broadcaster import Broadcaster
from core.constants import UserRoles


class RecordingBroadcaster(Broadcaster):
    """Keeps every published event in memory"""

    def __init__(self, processing_count_provider=None):
        super().__init__(processing_count_provider)
        self.events = []

    def send(self, event, payload):
        self.events.append((event, payload))

    def names(self):
        return [event for event, _ in self.events]

    def of(self, event):
        return [payload for name, payload in self.events if name == event]


# ---------------------------------------------------------------------------
# Broadcasting
# ---------------------------------------------------------------------------


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster(processing_count_provider=lambda: 0)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db, django_user_model):
    def _make(role, email=None):
        return django_user_model.objects.create_user(
            email=email or f"{role}@escashop.test",
            password='secret-pass',
            full_name=f"Test {role.replace('_', ' ').title()}",
            role=role,
        )
    return _make


@pytest.fixture
def super_admin(make_user):
    return make_user(UserRoles.SUPER_ADMIN)


@pytest.fixture
def admin_user(make_user):
    return make_user(UserRoles.ADMIN)


@pytest.fixture
def cashier(make_user):
    return make_user(UserRoles.CASHIER)


@pytest.fixture
def sales_agent(make_user):
    return make_user(UserRoles.SALES)


# ---------------------------------------------------------------------------
# Counters and customers
# ---------------------------------------------------------------------------


@pytest.fixture
def counter(db):
    return Counter.objects.create(name='Counter 1', display_order=1)


@pytest.fixture
def second_counter(db):
    return Counter.objects.create(name='Counter 2', display_order=2)


@pytest.fixture
def make_customer(db, broadcaster):
    service = CustomerService(broadcaster=broadcaster)
    sequence = {'n': 0}

    def _make(name=None, priority=None, payment=None, create_transaction=True, **details):
        sequence['n'] += 1
        return service.register(
            name=name or f"Customer {sequence['n']}",
            priority_flags=priority,
            payment_info=payment,
            create_transaction=create_transaction,
            **details,
        )
    return _make


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _as(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _as
