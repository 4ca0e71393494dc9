from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

urlpatterns = [
    path('admin/', admin.site.urls),

    # Auth
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # API endpoints
    path('api/customers/', include('apps.customers.urls')),
    path('api/counters/', include('apps.counters.urls')),
    path('api/queue/', include('apps.service_queue.urls')),
    path('api/transactions/', include('apps.transactions.urls')),
    path('api/daily-reset/', include('apps.daily_reset.urls')),
]
