# apps/counters/serializers.py
from rest_framework import serializers

from .models import Counter


class CounterSerializer(serializers.ModelSerializer):
    """Counter with its occupant's name for the admin screen"""

    current_customer_name = serializers.CharField(
        source='current_customer.name', read_only=True, default=None
    )
    current_customer_token = serializers.IntegerField(
        source='current_customer.token_number', read_only=True, default=None
    )

    class Meta:
        model = Counter
        fields = [
            'id', 'name', 'display_order', 'is_active',
            'current_customer', 'current_customer_name', 'current_customer_token',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['current_customer', 'created_at', 'updated_at']
