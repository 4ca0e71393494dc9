# apps/counters/urls.py
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import CounterViewSet

router = DefaultRouter()
router.register(r'', CounterViewSet, basename='counter')

urlpatterns = [
    path('', include(router.urls)),
]
