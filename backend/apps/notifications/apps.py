"""
Notifications app configuration.
Best-effort fan-out of dispute lifecycle events to split participants.
"""
from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.notifications'
    verbose_name = 'Notifications'
