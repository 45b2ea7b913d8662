"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the lifecycle services
stay framework-agnostic.  ``core.domain.exception_handler`` maps them to
HTTP responses.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────────────┬──────┐
│ Domain Exception    │ Meaning                              │ Code │
├─────────────────────┼──────────────────────────────────────┼──────┤
│ DomainError         │ Missing / malformed input            │ 400  │
│ PermissionDenied    │ Authenticated, not allowed here      │ 403  │
│ NotFound            │ Complaint / worker / report absent   │ 404  │
│ Conflict            │ Stale write (expected_updated_at)    │ 409  │
│ InvalidTransition   │ Transition illegal from this state   │ 409  │
│ TransientError      │ Data store or audit write failed     │ 503  │
└─────────────────────┴──────────────────────────────────────┴──────┘

Validation, not-found and permission errors are raised *before* any
mutation.  ``TransientError`` may be raised after the mutation was
attempted; the surrounding ``transaction.atomic`` block rolls it back.

Usage inside a service::

    from core.domain.exceptions import NotFound

    try:
        complaint = Complaint.objects.get(pk=complaint_id)
    except Complaint.DoesNotExist:
        raise NotFound(f"Complaint with id {complaint_id} not found.")
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Raised directly it means the caller sent invalid input
    (HTTP 400); no mutation has been attempted.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The caller is authenticated but may not act on this particular
    resource, e.g. a worker reporting on a complaint assigned to
    someone else.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The referenced complaint, worker or report does not exist.

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Raised when a caller supplies ``expected_updated_at`` and the stored
    row has moved on since it was read.  Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A lifecycle transition that is not allowed from the current status.

    Example::

        raise InvalidTransition(
            current="submitted",
            target="resolved",
            reason="No worker report has been filed.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"({reason})")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class TransientError(DomainError):
    """
    The data store (or the audit log living in it) failed underneath an
    otherwise valid operation.  Callers must treat the operation as
    failed and may retry.

    Maps to HTTP 503.
    """

    def __init__(self, message: str = "The operation could not be completed. Please retry.") -> None:
        super().__init__(message)
