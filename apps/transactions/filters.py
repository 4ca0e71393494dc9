# apps/transactions/filters.py

from django.db.models import Q
from django_filters import rest_framework as filters

from apps.customers.values import normalize_payment_mode
from core.utils import local_day_bounds
from .models import Transaction


class TransactionFilter(filters.FilterSet):
    """Filter for transactions"""

    start_date = filters.DateFilter(method='filter_start_date')
    end_date = filters.DateFilter(method='filter_end_date')
    payment_mode = filters.CharFilter(method='filter_payment_mode')
    payment_status = filters.CharFilter(field_name='payment_status')
    sales_agent = filters.NumberFilter(field_name='sales_agent_id')
    cashier = filters.NumberFilter(field_name='cashier_id')
    customer = filters.NumberFilter(field_name='customer_id')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = Transaction
        fields = ['payment_status', 'sales_agent', 'cashier', 'customer']

    def filter_start_date(self, queryset, name, value):
        """Local service days, inclusive"""
        start, _ = local_day_bounds(value)
        return queryset.filter(transaction_date__gte=start)

    def filter_end_date(self, queryset, name, value):
        _, end = local_day_bounds(value)
        return queryset.filter(transaction_date__lt=end)

    def filter_payment_mode(self, queryset, name, value):
        return queryset.filter(payment_mode=normalize_payment_mode(value))

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(or_number__icontains=value) |
            Q(customer__name__icontains=value)
        )
