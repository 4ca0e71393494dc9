# apps/transactions/serializers.py
from decimal import Decimal

from rest_framework import serializers

from .models import PaymentSettlement, Transaction, TransactionItem


class TransactionItemSerializer(serializers.ModelSerializer):
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))

    class Meta:
        model = TransactionItem
        fields = ['id', 'item_name', 'description', 'quantity', 'unit_price', 'line_total', 'created_at']
        read_only_fields = ['created_at']


class PaymentSettlementSerializer(serializers.ModelSerializer):
    cashier_name = serializers.CharField(source='cashier.full_name', read_only=True, default=None)

    class Meta:
        model = PaymentSettlement
        fields = ['id', 'transaction', 'amount', 'payment_mode', 'cashier', 'cashier_name', 'paid_at', 'created_at']
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """Transaction with its derived columns and line items"""

    customer_name = serializers.CharField(source='customer.name', read_only=True)
    sales_agent_name = serializers.CharField(source='sales_agent.full_name', read_only=True, default=None)
    cashier_name = serializers.CharField(source='cashier.full_name', read_only=True, default=None)
    items = TransactionItemSerializer(many=True, read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'customer', 'customer_name', 'or_number',
            'base_amount', 'amount', 'paid_amount', 'balance_amount',
            'payment_status', 'payment_mode',
            'sales_agent', 'sales_agent_name', 'cashier', 'cashier_name',
            'transaction_date', 'items', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField()
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, allow_null=True
    )
    payment_mode = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    or_number = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_or_number(self, value):
        if value and Transaction.objects.filter(or_number=value).exists():
            raise serializers.ValidationError("OR number already exists")
        return value


class TransactionUpdateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False
    )
    payment_mode = serializers.CharField(required=False)


class SettlementCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_mode = serializers.CharField()


class DailySummaryQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
