"""
DRF permission classes built on the caller's resolved role.
"""

from __future__ import annotations

from rest_framework.permissions import BasePermission

from core.domain.access import ROLE_ADMIN, ROLE_WORKER, get_user_role_name


class IsAdmin(BasePermission):
    """Allows access to admins (role ``admin`` or superusers)."""

    message = "Admin access required."

    def has_permission(self, request, view) -> bool:
        return get_user_role_name(request.user) == ROLE_ADMIN


class IsWorker(BasePermission):
    """Allows access to accounts holding the ``worker`` role."""

    message = "Worker access required."

    def has_permission(self, request, view) -> bool:
        return get_user_role_name(request.user) == ROLE_WORKER
