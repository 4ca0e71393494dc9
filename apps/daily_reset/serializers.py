# apps/daily_reset/serializers.py
from rest_framework import serializers

from .models import DailyQueueHistory, DailyResetLog


class DailyQueueHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = DailyQueueHistory
        fields = '__all__'


class DailyResetLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = DailyResetLog
        fields = '__all__'


class RunResetSerializer(serializers.Serializer):
    force = serializers.BooleanField(required=False, default=False)


class HistoryQuerySerializer(serializers.Serializer):
    days = serializers.IntegerField(required=False, default=30, min_value=1, max_value=3650)
