from django.apps import AppConfig


class OrganisationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'worktrackr.organisations'
    label = 'organisations'

    def ready(self):
        """Import seat tracking signals"""
        import worktrackr.organisations.signals  # noqa: F401
