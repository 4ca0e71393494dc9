# apps/daily_reset/views.py
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.permissions import IsAdminRole
from .models import DailyResetLog
from .serializers import (
    DailyQueueHistorySerializer,
    DailyResetLogSerializer,
    HistoryQuerySerializer,
    RunResetSerializer,
)
from .services import DailyQueueResetService


class RunDailyResetView(APIView):
    """Manual trigger for the daily reset (admins only)"""

    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = RunResetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        force = serializer.validated_data['force']

        service = DailyQueueResetService()
        try:
            reset_log = service.perform_daily_reset(force=force)
        except Exception as exc:
            service.record_failure(exc, force=force)
            raise

        if reset_log is None:
            return Response(
                {'status': 'skipped', 'message': "Today's reset already ran"},
                status=status.HTTP_200_OK,
            )
        return Response(
            {'status': 'done', 'log': DailyResetLogSerializer(reset_log).data},
            status=status.HTTP_201_CREATED,
        )


class DailyHistoryView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        params = HistoryQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        history = DailyQueueResetService.get_daily_history(params.validated_data['days'])
        return Response(DailyQueueHistorySerializer(history, many=True).data)


class DailyResetLogView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        logs = DailyResetLog.objects.all()[:100]
        return Response(DailyResetLogSerializer(logs, many=True).data)
