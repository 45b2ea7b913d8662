from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Owns the blob storage client shared by the attachment endpoints and
    the complaint lifecycle.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Core"

    storage = None

    def ready(self):
        from core.domain.storage import SignedURLStorage

        self.storage = SignedURLStorage.from_settings()
