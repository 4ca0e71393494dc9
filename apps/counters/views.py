# apps/counters/views.py
from rest_framework import status, viewsets
from rest_framework.response import Response

from apps.accounts.permissions import IsAdminRole, IsShopStaff
from apps.service_queue.services import CounterService
from .models import Counter
from .serializers import CounterSerializer


class CounterViewSet(viewsets.ModelViewSet):
    """
    Counter administration. Reads are open to shop staff, writes to admins.
    Writes go through CounterService so occupancy is released properly.
    """

    queryset = Counter.objects.select_related('current_customer').all()
    serializer_class = CounterSerializer
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [IsShopStaff()]
        return [IsAdminRole()]

    def get_queryset(self):
        return CounterService.list_counters(
            active_only=self.request.query_params.get('active') in ('1', 'true', 'True')
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        counter = CounterService().create_counter(actor=request.user, **serializer.validated_data)
        return Response(self.get_serializer(counter).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        counter = CounterService().update_counter(
            kwargs['pk'], actor=request.user, **serializer.validated_data
        )
        return Response(self.get_serializer(counter).data)

    def destroy(self, request, *args, **kwargs):
        CounterService().delete_counter(kwargs['pk'], actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
