# apps/customers/views.py
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.response import Response

from apps.accounts.permissions import IsShopStaff
from .models import Customer
from .serializers import CustomerRegistrationSerializer, CustomerSerializer
from .services import CustomerService


class CustomerViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      mixins.CreateModelMixin,
                      viewsets.GenericViewSet):
    """Register, list and look up customers"""

    queryset = Customer.objects.select_related('sales_agent').all()
    serializer_class = CustomerSerializer
    permission_classes = [IsShopStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['queue_status', 'service_date', 'sales_agent', 'carried_forward']
    search_fields = ['name', 'or_number', 'contact_number']
    ordering_fields = ['created_at', 'token_number']

    def create(self, request, *args, **kwargs):
        serializer = CustomerRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        customer = CustomerService().register(
            name=data.pop('name'),
            priority_flags=data.pop('priority_flags', None),
            payment_info=data.pop('payment_info', None),
            create_transaction=data.pop('create_transaction', True),
            sales_agent=request.user,
            **{key: value for key, value in data.items() if value not in (None, '')},
        )
        return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)
