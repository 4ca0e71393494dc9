# apps/daily_reset/urls.py
from django.urls import path

from .views import DailyHistoryView, DailyResetLogView, RunDailyResetView

urlpatterns = [
    path('run/', RunDailyResetView.as_view(), name='daily-reset-run'),
    path('history/', DailyHistoryView.as_view(), name='daily-reset-history'),
    path('logs/', DailyResetLogView.as_view(), name='daily-reset-logs'),
]
