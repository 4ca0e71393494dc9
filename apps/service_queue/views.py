# apps/service_queue/views.py
import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.accounts.permissions import IsAdminRole, IsCashierOrAdmin, IsShopStaff
from apps.customers.serializers import CustomerSerializer
from .serializers import (
    CallCustomerSerializer,
    CallNextSerializer,
    CancelSerializer,
    CompleteSerializer,
    QueueEntrySerializer,
    QueueFilterSerializer,
    ReorderSerializer,
    ResetSerializer,
    StatusChangeSerializer,
)
from .services import QueueService

logger = logging.getLogger(__name__)


class QueueViewSet(viewsets.ViewSet):
    """
    Queue operations for the counter and lobby screens.

    Every status move is checked against the caller's role by the queue
    service; the permission classes here only keep anonymous and
    unknown-role users out.
    """

    permission_classes = [IsShopStaff]
    lookup_value_regex = r'\d+'

    def get_permissions(self):
        if self.action == 'reset':
            return [IsAdminRole()]
        if self.action == 'reorder':
            return [IsCashierOrAdmin()]
        return super().get_permissions()

    @staticmethod
    def _validated(serializer_class, data):
        serializer = serializer_class(data=data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    @staticmethod
    def _customer_response(customer, code=status.HTTP_200_OK):
        return Response(CustomerSerializer(customer).data, status=code)

    # ===========================================
    # Reads
    # ===========================================

    def list(self, request):
        params = self._validated(QueueFilterSerializer, request.query_params)
        entries = QueueService().get_queue(params.get('status') or None)
        return Response(QueueEntrySerializer(entries, many=True).data)

    @action(detail=False, methods=['get'])
    def display(self, request):
        entries = QueueService().get_display_queue()
        return Response(QueueEntrySerializer(entries, many=True).data)

    @action(detail=False, methods=['get'])
    def statistics(self, request):
        return Response(QueueService.get_queue_statistics())

    @action(detail=True, methods=['get'])
    def position(self, request, pk=None):
        position = QueueService().get_position(pk)
        return Response({
            'customer_id': int(pk),
            'position': position,
            'estimated_wait_minutes': QueueService.wait_for_position(position),
        })

    # ===========================================
    # Transitions
    # ===========================================

    @action(detail=False, methods=['post'], url_path='call-next')
    def call_next(self, request):
        data = self._validated(CallNextSerializer, request.data)
        customer = QueueService().call_next(data['counter_id'], actor=request.user)
        return self._customer_response(customer)

    @action(detail=False, methods=['post'], url_path='call-customer')
    def call_customer(self, request):
        data = self._validated(CallCustomerSerializer, request.data)
        customer = QueueService().call_specific_customer(
            data['customer_id'], data['counter_id'], actor=request.user
        )
        return self._customer_response(customer)

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        data = self._validated(StatusChangeSerializer, request.data)
        customer = QueueService().change_status(
            int(pk),
            data['status'],
            actor=request.user,
            counter_id=data.get('counter_id'),
            reason=data.get('reason', ''),
        )
        return self._customer_response(customer)

    @action(detail=False, methods=['post'])
    def complete(self, request):
        data = self._validated(CompleteSerializer, request.data)
        customer = QueueService().complete_service(
            data['customer_id'], counter_id=data.get('counter_id'), actor=request.user
        )
        return self._customer_response(customer)

    @action(detail=False, methods=['post'])
    def cancel(self, request):
        data = self._validated(CancelSerializer, request.data)
        customer = QueueService().cancel_service(
            data['customer_id'], reason=data.get('reason', ''), actor=request.user
        )
        return self._customer_response(customer)

    @action(detail=False, methods=['post'])
    def reorder(self, request):
        data = self._validated(ReorderSerializer, request.data)
        entries = QueueService().reorder_queue(data['customer_ids'], actor=request.user)
        return Response(QueueEntrySerializer(entries, many=True).data)

    @action(detail=False, methods=['post'])
    def reset(self, request):
        data = self._validated(ResetSerializer, request.data)
        logger.warning(f"[QUEUE_RESET] Requested by {request.user.email}")
        result = QueueService().reset_queue(actor=request.user, reason=data.get('reason', ''))
        return Response(result)
