from django.apps import AppConfig


class PortalConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "portal"

    def ready(self):
        # Register file-cleanup signal handlers.
        from . import signals  # noqa: F401
