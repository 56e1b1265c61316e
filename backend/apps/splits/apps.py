"""
Splits app configuration.
Owns shared expense splits, their participants and freeze state.
"""
from django.apps import AppConfig


class SplitsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.splits'
    verbose_name = 'Splits'
