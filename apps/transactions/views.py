# apps/transactions/views.py
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.accounts.permissions import IsAdminRole, IsCashierOrAdmin, IsShopStaff
from .filters import TransactionFilter
from .models import Transaction
from .serializers import (
    DailySummaryQuerySerializer,
    PaymentSettlementSerializer,
    SettlementCreateSerializer,
    TransactionCreateSerializer,
    TransactionItemSerializer,
    TransactionSerializer,
    TransactionUpdateSerializer,
)
from .services import PaymentSettlementService, TransactionItemService, TransactionService


class TransactionViewSet(viewsets.ModelViewSet):
    """
    Transactions, their line items and settlements.

    Derived money columns are never written here; every write goes through
    a service that reconciles the row.
    """

    queryset = Transaction.objects.select_related(
        'customer', 'sales_agent', 'cashier'
    ).prefetch_related('items').all()
    serializer_class = TransactionSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = TransactionFilter
    ordering_fields = ['transaction_date', 'amount', 'balance_amount']
    lookup_value_regex = r'\d+'
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_permissions(self):
        if self.action == 'destroy':
            return [IsAdminRole()]
        if self.action in ('partial_update', 'settlements') and self.request.method != 'GET':
            return [IsCashierOrAdmin()]
        return [IsShopStaff()]

    def create(self, request, *args, **kwargs):
        serializer = TransactionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        tx = TransactionService().create_transaction(
            data['customer_id'],
            amount=data.get('amount'),
            payment_mode=data.get('payment_mode'),
            or_number=data.get('or_number') or None,
            user=request.user,
        )
        return Response(TransactionSerializer(tx).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = TransactionUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tx = TransactionService().update_transaction(
            kwargs['pk'], user=request.user, **serializer.validated_data
        )
        return Response(TransactionSerializer(tx).data)

    def destroy(self, request, *args, **kwargs):
        TransactionService().delete_transaction(kwargs['pk'], user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ===========================================
    # Line items
    # ===========================================

    @action(detail=True, methods=['get', 'post'])
    def items(self, request, pk=None):
        service = TransactionItemService()
        if request.method == 'GET':
            return Response(TransactionItemSerializer(service.list_items(pk), many=True).data)

        serializer = TransactionItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tx, _ = service.add_item(pk, user=request.user, **serializer.validated_data)
        return Response(TransactionSerializer(tx).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch', 'delete'], url_path=r'items/(?P<item_id>\d+)')
    def item_detail(self, request, pk=None, item_id=None):
        service = TransactionItemService()
        if request.method == 'DELETE':
            tx = service.remove_item(pk, item_id, user=request.user)
            return Response(TransactionSerializer(tx).data)

        serializer = TransactionItemSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        tx, _ = service.update_item(pk, item_id, user=request.user, **serializer.validated_data)
        return Response(TransactionSerializer(tx).data)

    # ===========================================
    # Settlements
    # ===========================================

    @action(detail=True, methods=['get', 'post'])
    def settlements(self, request, pk=None):
        service = PaymentSettlementService()
        if request.method == 'GET':
            return Response(PaymentSettlementSerializer(service.get_settlements(pk), many=True).data)

        serializer = SettlementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        settlement, tx = service.create_settlement(
            pk,
            serializer.validated_data['amount'],
            serializer.validated_data['payment_mode'],
            cashier=request.user,
        )
        return Response(
            {
                'settlement': PaymentSettlementSerializer(settlement).data,
                'transaction': TransactionSerializer(tx).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=['get'], url_path='daily-summary')
    def daily_summary(self, request):
        params = DailySummaryQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        return Response(TransactionService.daily_summary(params.validated_data.get('date')))
