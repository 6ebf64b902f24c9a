from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Configuration for Core application

    This app contains no tables of its own. It provides:
        - The typed error hierarchy shared by every component
        - Field validators (email, phone, numeric ranges)
        - Datastore error translation (TransientStoreError)
        - JSON response helpers for the API views
        - The abstract UUID/timestamp base model
    """
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'
