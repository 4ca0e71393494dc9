# apps/service_queue/serializers.py
from rest_framework import serializers

from apps.customers.serializers import CustomerSerializer
from core.exceptions import InvalidQueueStatus
from .transitions import parse_status


class QueueStatusField(serializers.CharField):
    """Accepts any letter case, yields the lowercase status"""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return parse_status(value).value
        except InvalidQueueStatus as exc:
            raise serializers.ValidationError(exc.message)


class QueueEntrySerializer(serializers.Serializer):
    customer = CustomerSerializer(read_only=True)
    position = serializers.IntegerField(allow_null=True)
    priority_score = serializers.IntegerField()
    estimated_wait_minutes = serializers.IntegerField()
    counter = serializers.SerializerMethodField()

    def get_counter(self, entry):
        if entry.counter is None:
            return None
        return {'id': entry.counter.pk, 'name': entry.counter.name}


class QueueFilterSerializer(serializers.Serializer):
    status = QueueStatusField(required=False, allow_blank=True)


class CallNextSerializer(serializers.Serializer):
    counter_id = serializers.IntegerField()


class CallCustomerSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField()
    counter_id = serializers.IntegerField()


class StatusChangeSerializer(serializers.Serializer):
    status = QueueStatusField()
    counter_id = serializers.IntegerField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class CompleteSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField()
    counter_id = serializers.IntegerField(required=False, allow_null=True)


class CancelSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ReorderSerializer(serializers.Serializer):
    customer_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class ResetSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
