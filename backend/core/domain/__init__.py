"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions     Domain-specific exceptions that map cleanly to HTTP responses.
audit          Append-only Audit Log Writer with typed payloads per action.
notifications  Best-effort email Notification Dispatcher and transports.
storage        Blob Storage collaborator (upload targets, signed read URLs).
transactions   Helpers for ``transaction.atomic`` + ``select_for_update``.
access         Role guards and audit actor naming.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.audit import AuditLogWriter
    from core.domain.notifications import NotificationDispatcher
    from core.domain.transactions import lock_for_update
    from core.domain.access import require_role
"""
