# apps/customers/serializers.py
from rest_framework import serializers

from core.exceptions import InvalidPaymentMode
from .models import Customer
from .values import PaymentInfo, PriorityFlags


class CustomerSerializer(serializers.ModelSerializer):
    """Read representation of a queued customer"""

    priority_flags = serializers.SerializerMethodField()
    payment_info = serializers.SerializerMethodField()
    priority_score = serializers.SerializerMethodField()
    sales_agent_name = serializers.CharField(source='sales_agent.full_name', read_only=True, default=None)

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'contact_number', 'email', 'address', 'or_number',
            'prescription', 'distribution_info', 'remarks',
            'sales_agent', 'sales_agent_name',
            'priority_flags', 'priority_score', 'payment_info',
            'queue_status', 'token_number', 'service_date', 'manual_position',
            'served_at', 'carried_forward', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_priority_flags(self, obj):
        return obj.priority_flags.as_dict()

    def get_payment_info(self, obj):
        return obj.payment_info.as_dict()

    def get_priority_score(self, obj):
        return obj.priority_flags.score


class CustomerRegistrationSerializer(serializers.Serializer):
    """Validates registration input into value objects"""

    name = serializers.CharField(max_length=200)
    contact_number = serializers.CharField(max_length=30, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    or_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    prescription = serializers.JSONField(required=False)
    distribution_info = serializers.CharField(max_length=50, required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True)
    priority_flags = serializers.DictField(required=False)
    payment_info = serializers.DictField(required=False)
    create_transaction = serializers.BooleanField(required=False, default=True)

    def validate_priority_flags(self, value):
        try:
            return PriorityFlags.from_dict(value)
        except (TypeError, ValueError) as exc:
            raise serializers.ValidationError(str(exc))

    def validate_payment_info(self, value):
        try:
            return PaymentInfo.from_dict(value)
        except InvalidPaymentMode as exc:
            raise serializers.ValidationError(exc.message)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))

    def validate_or_number(self, value):
        if value and Customer.objects.filter(or_number=value).exists():
            raise serializers.ValidationError("OR number already exists")
        return value
