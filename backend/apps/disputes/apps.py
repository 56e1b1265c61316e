"""
Disputes app configuration.
Handles the dispute lifecycle for splits: review, decisions and appeals.
"""
from django.apps import AppConfig


class DisputesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.disputes'
    verbose_name = 'Disputes'
