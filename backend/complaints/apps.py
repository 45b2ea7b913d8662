import atexit
import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ComplaintsConfig(AppConfig):
    """
    Builds the complaint lifecycle service once per process.

    The notification dispatcher (with its thread pool) and audit writer
    are constructed here and injected together with the storage client
    owned by ``core``; views fetch the service through
    ``get_lifecycle_service``.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "complaints"
    verbose_name = "Complaints"

    lifecycle = None

    def ready(self):
        from django.apps import apps

        from core.domain.audit import AuditLogWriter
        from core.domain.notifications import NotificationDispatcher

        from .services import ComplaintLifecycleService

        storage = apps.get_app_config("core").storage
        notifier = NotificationDispatcher.from_settings(storage=storage)
        self.lifecycle = ComplaintLifecycleService(
            audit=AuditLogWriter(),
            notifier=notifier,
            storage=storage,
        )
        atexit.register(notifier.shutdown)
        logger.debug(
            "Complaint lifecycle ready (dry_run=%s)", notifier.transport.dry_run,
        )
