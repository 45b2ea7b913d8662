"""
core.domain.audit — Audit Log Writer.

Every state-changing complaint operation appends exactly one
``AuditLog`` row through ``AuditLogWriter.record``.  Unlike
notifications, audit writes are **not** best-effort: a failure is
re-raised as ``TransientError`` so the surrounding transaction rolls
back and the caller sees the whole operation as failed.

Payloads are a tagged union keyed by action name.  Each action has a
``TypedDict`` describing its required keys; ``record`` refuses a payload
missing any of them, so the stored shape per action is known ahead of
time.  Optional request metadata (``user_agent``) is merged in by the
writer.

Usage::

    from core.domain.audit import AuditLogWriter
    from core.models import AuditAction

    AuditLogWriter().record(
        complaint_id=complaint.pk,
        actor="admin@example.com",
        action=AuditAction.UPDATE_URGENCY,
        payload={"changes": {"urgency": "high"}, "previous_values": {"urgency": "medium"}},
    )
"""

from __future__ import annotations

import logging
from typing import Any, TypedDict

from django.db import DatabaseError

from core.domain.exceptions import TransientError
from core.models import AuditAction, AuditLog

logger = logging.getLogger(__name__)


# ── Payload shapes, one per action ──────────────────────────────────


class ComplaintSubmittedPayload(TypedDict):
    source: str
    category: str
    has_email: bool


class ComplaintAssignedPayload(TypedDict):
    assignment_id: int
    assigned_to: int
    assigned_to_name: str
    previous_assignee: int | None
    note: str


class WorkerReportSubmittedPayload(TypedDict):
    report_id: int
    worker_name: str
    photos_count: int
    has_comments: bool


class FieldUpdatePayload(TypedDict):
    changes: dict[str, Any]
    previous_values: dict[str, Any]


class ResolutionPayload(TypedDict):
    report_id: int | None
    note: str
    previous_status: str
    new_status: str


class BulkDeletePayload(TypedDict):
    complaint_data: dict[str, Any]


class BulkSetUrgencyPayload(TypedDict):
    urgency: str
    previous_urgency: str


class BulkGroupPayload(TypedDict):
    group_name: str
    previous_group: str


class QueuedForPortalPayload(TypedDict):
    job_id: str
    previous_status: str


PAYLOAD_SCHEMAS: dict[str, type] = {
    AuditAction.COMPLAINT_SUBMITTED: ComplaintSubmittedPayload,
    AuditAction.COMPLAINT_ASSIGNED: ComplaintAssignedPayload,
    AuditAction.WORKER_REPORT_SUBMITTED: WorkerReportSubmittedPayload,
    AuditAction.UPDATE_URGENCY: FieldUpdatePayload,
    AuditAction.UPDATE_STATUS: FieldUpdatePayload,
    AuditAction.UPDATE_FIELDS: FieldUpdatePayload,
    AuditAction.VERIFY_RESOLUTION: ResolutionPayload,
    AuditAction.REJECT_RESOLUTION: ResolutionPayload,
    AuditAction.BULK_DELETE: BulkDeletePayload,
    AuditAction.BULK_SET_URGENCY: BulkSetUrgencyPayload,
    AuditAction.BULK_GROUP: BulkGroupPayload,
    AuditAction.QUEUED_FOR_PORTAL: QueuedForPortalPayload,
}


def validate_payload(action: str, payload: dict[str, Any]) -> None:
    """
    Check ``payload`` against the schema registered for ``action``.

    Raises ``ValueError`` for an unknown action or missing keys; this is
    a programming error in the calling service, not user input.
    """
    schema = PAYLOAD_SCHEMAS.get(action)
    if schema is None:
        raise ValueError(f"Unknown audit action '{action}'.")
    missing = schema.__required_keys__ - payload.keys()
    if missing:
        raise ValueError(
            f"Audit payload for '{action}' is missing keys: {', '.join(sorted(missing))}."
        )


class AuditLogWriter:
    """
    Appends immutable audit entries.

    Instances are cheap and stateless; the lifecycle services receive one
    at construction so tests can substitute a failing writer.
    """

    def record(
        self,
        *,
        complaint_id: int | None,
        actor: str,
        action: str,
        payload: dict[str, Any],
        request_meta: dict[str, Any] | None = None,
    ) -> AuditLog:
        """
        Persist one audit entry.

        Args:
            complaint_id: Complaint the action refers to; ``None`` for
                          actions that are not about a single complaint.
            actor:        Caller identity string.
            action:       An ``AuditAction`` value.
            payload:      Action-specific structured data.
            request_meta: Optional request metadata merged into the
                          stored payload (e.g. ``{"user_agent": ...}``).

        Raises:
            TransientError: If the row could not be written.
        """
        validate_payload(action, payload)
        stored = dict(payload)
        if request_meta:
            stored.update(request_meta)

        try:
            entry = AuditLog.objects.create(
                complaint_id=complaint_id,
                actor=actor or "unknown",
                action=action,
                payload=stored,
            )
        except DatabaseError as exc:
            logger.error(
                "Audit write failed for action=%s complaint=%s: %s",
                action, complaint_id, exc,
            )
            raise TransientError(
                "The change could not be recorded in the audit log and was not applied."
            ) from exc

        logger.debug("Audit [%s] complaint=%s actor=%s", action, complaint_id, actor)
        return entry
