"""
core.domain.access — Role helpers shared by service layers and views.

Identity is resolved upstream (JWT authentication); the lifecycle core
trusts the resolved user and only asks three questions of it:

1) ``get_user_role_name`` — which role does the caller hold?
2) ``require_role``       — guard that raises ``PermissionDenied``.
3) ``describe_actor``     — the identity string written to the audit log.

Usage::

    from core.domain.access import require_role

    require_role(request.user, "admin")
"""

from __future__ import annotations

from typing import Any

ROLE_ADMIN = "admin"
ROLE_WORKER = "worker"
ROLE_CITIZEN = "citizen"


def get_user_role_name(user: Any) -> str | None:
    """
    Return the caller's role, or ``None`` for anonymous callers.

    Superusers are always treated as admins.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    if getattr(user, "is_superuser", False):
        return ROLE_ADMIN
    return getattr(user, "role", None) or None


def require_role(user: Any, *allowed_roles: str, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the user's role is not
    among ``allowed_roles``.
    """
    from core.domain.exceptions import PermissionDenied as DomainPermissionDenied

    role_name = get_user_role_name(user)
    if role_name not in allowed_roles:
        raise DomainPermissionDenied(
            message
            or f"Role '{role_name or 'anonymous'}' is not permitted for this operation. "
            f"Required: {', '.join(allowed_roles)}."
        )


def describe_actor(user: Any, *, default: str = "citizen") -> str:
    """
    Identity string for audit entries: email, then username, then
    ``default`` for anonymous callers.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return default
    return getattr(user, "email", "") or getattr(user, "username", "") or default
