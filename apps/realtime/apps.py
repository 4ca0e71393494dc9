from django.apps import AppConfig


class RealtimeConfig(AppConfig):
    name = 'apps.realtime'
    verbose_name = 'Real-time Events'

    def ready(self):
        """Import and connect receivers when app is ready"""
        import apps.realtime.receivers  # noqa: F401
