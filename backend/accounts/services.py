"""
Accounts Service Layer.

Views must remain *thin*: they validate input through serializers, call
a service method, and return the result wrapped in a DRF ``Response``.

``WorkerRosterService`` provides read-only worker lookups used by the
complaint lifecycle and the admin UI.  Login itself is handled by
``CustomTokenObtainPairSerializer``.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db.models import QuerySet

from core.domain.exceptions import NotFound, PermissionDenied

from .models import Worker

logger = logging.getLogger(__name__)


class WorkerRosterService:
    """
    Read-only access to the worker roster.
    """

    @staticmethod
    def list_active_workers() -> QuerySet[Worker]:
        return Worker.objects.filter(is_active=True).select_related("user").order_by("display_name")

    @staticmethod
    def get_active_worker(worker_id: Any) -> Worker:
        """
        Resolve an assignable worker.

        Raises ``NotFound`` for unknown or inactive workers.
        """
        try:
            return Worker.objects.select_related("user").get(pk=worker_id, is_active=True)
        except (Worker.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Worker with id {worker_id} not found or inactive.")

    @staticmethod
    def get_worker_for_user(user: Any) -> Worker:
        """
        Resolve the roster entry of an authenticated worker account.

        Raises ``PermissionDenied`` when the caller is not an active
        worker.
        """
        worker = None
        if getattr(user, "is_authenticated", False):
            worker = (
                Worker.objects.select_related("user")
                .filter(user=user, is_active=True)
                .first()
            )
        if worker is None:
            logger.warning("Worker access refused for user=%s", user)
            raise PermissionDenied("Worker access required.")
        return worker
