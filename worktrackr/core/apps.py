from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'worktrackr.core'
    label = 'core'

    def ready(self):
        """Import signals when app is ready"""
        import worktrackr.core.cache_signals  # noqa: F401
