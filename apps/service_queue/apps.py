from django.apps import AppConfig


class ServiceQueueConfig(AppConfig):
    name = 'apps.service_queue'
    verbose_name = 'Service Queue'
