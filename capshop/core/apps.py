from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'capshop.core'

    def ready(self):
        """Import signals when app is ready"""
        import capshop.core.cache_signals  # noqa: F401  # Dashboard cache invalidation signals
