"""
Complaints app Service Layer.

This module is the **single source of truth** for the complaint
lifecycle.  Views must remain thin: validate input via serializers,
call a service method, and return the result wrapped in a DRF
``Response``.

Architecture
------------
- ``ComplaintQueryService``:     filtered querysets and lookups.
- ``ComplaintLifecycleService``: every state-changing operation
  (submit, assign, report, verify/reject, field patch, bulk, portal).

Workflow State-Machine Overview
--------------------------------
  SUBMITTED
    → ASSIGNED                     (admin assigns a worker; re-assign allowed)
    → ADMIN_VERIFICATION_PENDING   (assignee files a report)
    → RESOLVED                     (admin verifies the report)
  ADMIN_VERIFICATION_PENDING
    → IN_PROGRESS                  (admin rejects the report)
       ↺ ADMIN_VERIFICATION_PENDING  (assignee files a new report)
  any → QUEUED_FOR_PORTAL          (manual hand-off, stub)
  any → any                        (admin field patch, audited with prior value)

Side-effect ordering
--------------------
Every operation runs inside one ``transaction.atomic`` block (via
``atomic_transition``, which reports data-store failures as
``TransientError`` after the rollback):

1. validate input and re-read the complaint under ``select_for_update``;
2. perform the mutation;
3. append the audit entry (a failure raises ``TransientError`` and the
   whole block rolls back);
4. schedule notifications with ``transaction.on_commit``.  Delivery is
   best-effort and can never undo steps 2-3.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, TypedDict

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db.models import Q, QuerySet
from django.utils import timezone

from accounts.models import Worker
from accounts.services import WorkerRosterService
from core.domain.access import describe_actor
from core.domain.audit import AuditLogWriter
from core.domain.exceptions import DomainError, InvalidTransition, NotFound, PermissionDenied
from core.domain.notifications import NotificationDispatcher
from core.domain.storage import BlobStorage
from core.domain.transactions import (
    atomic_transition,
    ensure_not_stale,
    lock_for_update,
    run_in_atomic,
)
from core.models import AuditAction, AuditLog

from .models import (
    DESCRIPTION_MAX_LENGTH,
    Complaint,
    ComplaintAssignment,
    ComplaintCategory,
    ComplaintStatus,
    ComplaintUrgency,
    ReportStatus,
    VerificationStatus,
    WorkerReport,
)

logger = logging.getLogger(__name__)

# Fields an admin may overwrite through ``update_fields``.
PATCHABLE_FIELDS: tuple[str, ...] = (
    "urgency",
    "status",
    "description",
    "category",
    "subtype",
    "location_text",
    "group_name",
)

_CHOICE_FIELDS: dict[str, Any] = {
    "urgency": ComplaintUrgency,
    "status": ComplaintStatus,
    "category": ComplaintCategory,
}


class BulkAction:
    DELETE = "delete"
    SET_URGENCY = "set_urgency"
    GROUP = "group"

    ALL = (DELETE, SET_URGENCY, GROUP)


class BulkResults(TypedDict):
    updated: int
    failed: int
    errors: list[str]


class BulkOutcome(TypedDict):
    success: bool
    message: str
    results: BulkResults


def _complaint_conf() -> dict[str, Any]:
    return settings.COMPLAINTS


def _clean_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DomainError(f"'{field}' must be a string.")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise DomainError(f"'{field}' must be at most {max_length} characters.")
    return value


def _clean_email(value: Any) -> str:
    email = _clean_text(value, "email", max_length=254)
    if email:
        try:
            validate_email(email)
        except DjangoValidationError:
            raise DomainError(f"Invalid email address '{email}'.")
    return email


def _clean_choice(value: Any, field: str) -> str:
    choices = _CHOICE_FIELDS[field]
    if value not in choices.values:
        raise DomainError(
            f"Invalid {field} '{value}'. Must be one of: {', '.join(choices.values)}."
        )
    return value


def _clean_keys(value: Any, field: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(
        isinstance(key, str) and key.strip() for key in value
    ):
        raise DomainError(f"'{field}' must be a list of storage keys.")
    return [key.strip() for key in value]


def _clean_point(lat: Any, lng: Any) -> tuple[Decimal | None, Decimal | None]:
    """Both coordinates or neither; stored with six decimal places."""
    if lat is None and lng is None:
        return None, None
    if lat is None or lng is None:
        raise DomainError("lat and lng must be provided together.")
    try:
        point = (
            Decimal(str(lat)).quantize(Decimal("0.000001")),
            Decimal(str(lng)).quantize(Decimal("0.000001")),
        )
        in_range = -90 <= point[0] <= 90 and -180 <= point[1] <= 180
    except (InvalidOperation, ValueError):
        raise DomainError("lat and lng must be numbers.")
    if not in_range:
        raise DomainError("lat/lng out of range.")
    return point


def _snapshot(complaint: Complaint) -> dict[str, Any]:
    """Column values of ``complaint`` for the ``bulk_delete`` audit entry."""
    return {
        field.attname: getattr(complaint, field.attname)
        for field in complaint._meta.concrete_fields
    }


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


class ComplaintQueryService:
    """
    Read-side lookups.  No auditing, no notifications.
    """

    @staticmethod
    def list_complaints(
        *,
        status: str | None = None,
        category: str | None = None,
        urgency: str | None = None,
        group_name: str | None = None,
        assigned_to: Any = None,
        created_after: datetime.datetime | None = None,
        created_before: datetime.datetime | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[Complaint], int]:
        """
        Filter and paginate complaints, newest first.

        ``"all"`` for a choice filter means no filtering.  ``limit`` is
        clamped to ``COMPLAINTS["MAX_PAGE_SIZE"]``.

        Returns
        -------
        tuple
            ``(page, total)`` where ``total`` counts every match.
        """
        conf = _complaint_conf()
        if limit is None:
            limit = conf["DEFAULT_PAGE_SIZE"]
        if limit < 1 or offset < 0:
            raise DomainError("limit must be positive and offset non-negative.")
        limit = min(limit, conf["MAX_PAGE_SIZE"])

        qs: QuerySet[Complaint] = Complaint.objects.select_related("assigned_to")
        if status and status != "all":
            qs = qs.filter(status=status)
        if category and category != "all":
            qs = qs.filter(category=category)
        if urgency and urgency != "all":
            qs = qs.filter(urgency=urgency)
        if group_name:
            qs = qs.filter(group_name=group_name)
        if assigned_to is not None:
            qs = qs.filter(assigned_to_id=assigned_to)
        if created_after is not None:
            qs = qs.filter(created_at__gte=created_after)
        if created_before is not None:
            qs = qs.filter(created_at__lte=created_before)
        if search:
            qs = qs.filter(
                Q(token__icontains=search)
                | Q(description__icontains=search)
                | Q(location_text__icontains=search)
                | Q(subtype__icontains=search)
            )

        qs = qs.order_by("-created_at", "-id")
        total = qs.count()
        return list(qs[offset:offset + limit]), total

    @staticmethod
    def get_complaint(complaint_id: Any) -> Complaint:
        try:
            return Complaint.objects.select_related("assigned_to").get(pk=complaint_id)
        except (Complaint.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Complaint with id {complaint_id} not found.")

    @staticmethod
    def get_by_token(token: str) -> Complaint:
        try:
            return Complaint.objects.get(token__iexact=(token or "").strip())
        except Complaint.DoesNotExist:
            raise NotFound(f"No complaint found for token '{token}'.")

    @staticmethod
    def list_assigned_to(worker: Worker) -> QuerySet[Complaint]:
        """Complaints currently assigned to ``worker``, most recent first."""
        return (
            Complaint.objects.filter(assigned_to=worker)
            .prefetch_related("reports")
            .order_by("-assigned_at", "-id")
        )

    @staticmethod
    def list_reports(status: str | None = ReportStatus.SUBMITTED) -> QuerySet[WorkerReport]:
        """Worker reports, by default only those awaiting review."""
        qs = WorkerReport.objects.select_related("complaint", "worker")
        if status and status != "all":
            if status not in ReportStatus.values:
                raise DomainError(
                    f"Invalid report status '{status}'. Must be one of: {', '.join(ReportStatus.values)}."
                )
            qs = qs.filter(status=status)
        return qs.order_by("-created_at", "-id")

    @staticmethod
    def list_assignments(complaint_id: Any) -> QuerySet[ComplaintAssignment]:
        complaint = ComplaintQueryService.get_complaint(complaint_id)
        return complaint.assignments.select_related("assigned_to", "assigned_by")

    @staticmethod
    def list_audit_log(complaint_id: Any) -> QuerySet[AuditLog]:
        complaint = ComplaintQueryService.get_complaint(complaint_id)
        return AuditLog.objects.filter(complaint_id=complaint.pk)


# ═══════════════════════════════════════════════════════════════════
#  Lifecycle Service
# ═══════════════════════════════════════════════════════════════════


class ComplaintLifecycleService:
    """
    The complaint state machine and its side effects.

    Built once at process start (``ComplaintsConfig.ready``) with its
    collaborators injected; tests construct their own with fakes.

    Parameters
    ----------
    audit : AuditLogWriter
        Must succeed for an operation to succeed.
    notifier : NotificationDispatcher
        Best-effort; scheduled after commit.
    storage : BlobStorage
        Resolves report photo keys for the resolution email.
    """

    def __init__(
        self,
        *,
        audit: AuditLogWriter,
        notifier: NotificationDispatcher,
        storage: BlobStorage | None = None,
    ) -> None:
        self.audit = audit
        self.notifier = notifier
        self.storage = storage

    # ── Submit ──────────────────────────────────────────────────────

    @atomic_transition
    def submit(
        self,
        data: dict[str, Any],
        *,
        actor: Any = None,
        request_meta: dict[str, Any] | None = None,
    ) -> Complaint:
        """
        Create a complaint in ``submitted``.

        Raises
        ------
        DomainError
            If ``category`` or ``description`` is missing or malformed.
        """
        category = data.get("category")
        description = _clean_text(data.get("description"), "description",
                                  max_length=DESCRIPTION_MAX_LENGTH)
        if not category or not description:
            raise DomainError("Missing required fields: category and description.")
        category = _clean_choice(category, "category")
        urgency = _clean_choice(data.get("urgency") or ComplaintUrgency.MEDIUM, "urgency")

        lat, lng = _clean_point(data.get("lat"), data.get("lng"))

        complaint = Complaint.objects.create(
            category=category,
            subtype=_clean_text(data.get("subtype"), "subtype", max_length=100),
            description=description,
            urgency=urgency,
            location_text=_clean_text(data.get("location_text"), "location_text", max_length=500),
            latitude=lat,
            longitude=lng,
            email=_clean_email(data.get("email")),
            source=data.get("source") or "web",
            attachments=_clean_keys(data.get("attachments"), "attachments"),
        )

        self.audit.record(
            complaint_id=complaint.pk,
            actor=describe_actor(actor),
            action=AuditAction.COMPLAINT_SUBMITTED,
            payload={
                "source": complaint.source,
                "category": complaint.category,
                "has_email": bool(complaint.email),
            },
            request_meta=request_meta,
        )

        if complaint.email:
            self.notifier.dispatch("complaint_created", complaint)

        logger.info("Complaint %s submitted (category=%s)", complaint.token, complaint.category)
        return complaint

    # ── Assign ──────────────────────────────────────────────────────

    @atomic_transition
    def assign(
        self,
        complaint_id: Any,
        worker_id: Any,
        *,
        assigned_by: Any,
        note: str = "",
        expected_updated_at: datetime.datetime | None = None,
        request_meta: dict[str, Any] | None = None,
    ) -> tuple[Complaint, ComplaintAssignment]:
        """
        Bind the complaint to one active worker and append a history row.

        Re-assignment is allowed; the previous assignee loses report
        rights as soon as this commits.

        Raises
        ------
        NotFound
            Unknown complaint, or unknown / inactive worker.
        Conflict
            ``expected_updated_at`` no longer matches.
        """
        note = _clean_text(note, "note")
        complaint = lock_for_update(Complaint, complaint_id, label="Complaint")
        ensure_not_stale(complaint, expected_updated_at)
        worker = WorkerRosterService.get_active_worker(worker_id)

        previous_assignee = complaint.assigned_to_id
        assignment = ComplaintAssignment.objects.create(
            complaint=complaint,
            assigned_to=worker,
            assigned_by=assigned_by if getattr(assigned_by, "is_authenticated", False) else None,
            note=note,
        )

        complaint.assigned_to = worker
        complaint.assigned_at = timezone.now()
        complaint.status = ComplaintStatus.ASSIGNED
        complaint.save(update_fields=["assigned_to", "assigned_at", "status", "updated_at"])

        self.audit.record(
            complaint_id=complaint.pk,
            actor=describe_actor(assigned_by, default="admin"),
            action=AuditAction.COMPLAINT_ASSIGNED,
            payload={
                "assignment_id": assignment.pk,
                "assigned_to": worker.pk,
                "assigned_to_name": worker.display_name,
                "previous_assignee": previous_assignee,
                "note": note,
            },
            request_meta=request_meta,
        )

        if worker.contact_email:
            self.notifier.dispatch(
                "complaint_assigned",
                complaint,
                extra={
                    "worker_name": worker.display_name,
                    "note": note,
                    "dashboard_url": f"{self.notifier.app_url}/worker/dashboard",
                },
                recipients=[worker.contact_email],
            )

        logger.info(
            "Complaint %s assigned to worker=%s by=%s (previous=%s)",
            complaint.token, worker.pk, describe_actor(assigned_by, default="admin"),
            previous_assignee,
        )
        return complaint, assignment

    # ── Worker report ───────────────────────────────────────────────

    @atomic_transition
    def submit_report(
        self,
        complaint_id: Any,
        *,
        worker: Worker,
        comments: str = "",
        photos: list[str] | None = None,
        request_meta: dict[str, Any] | None = None,
    ) -> tuple[Complaint, WorkerReport]:
        """
        File the assignee's findings and move the complaint to review.

        Raises
        ------
        DomainError
            Neither comments nor photos supplied (when content is required).
        NotFound
            Unknown complaint.
        PermissionDenied
            ``worker`` is not the complaint's current assignee.
        """
        comments = _clean_text(comments, "comments")
        photos = _clean_keys(photos, "photos")
        if _complaint_conf()["REQUIRE_REPORT_CONTENT"] and not comments and not photos:
            raise DomainError("A report needs comments or at least one photo.")

        complaint = lock_for_update(Complaint, complaint_id, label="Complaint")
        if complaint.assigned_to_id != worker.pk:
            logger.warning(
                "Worker %s tried to report on complaint %s assigned to %s",
                worker.pk, complaint.token, complaint.assigned_to_id,
            )
            raise PermissionDenied("This complaint is not assigned to you.")

        report = WorkerReport.objects.create(
            complaint=complaint,
            worker=worker,
            comments=comments,
            photos=photos,
        )

        complaint.status = ComplaintStatus.ADMIN_VERIFICATION_PENDING
        complaint.verification_status = VerificationStatus.PENDING
        complaint.save(update_fields=["status", "verification_status", "updated_at"])

        self.audit.record(
            complaint_id=complaint.pk,
            actor=describe_actor(worker.user, default="worker"),
            action=AuditAction.WORKER_REPORT_SUBMITTED,
            payload={
                "report_id": report.pk,
                "worker_name": worker.display_name,
                "photos_count": len(photos),
                "has_comments": bool(comments),
            },
            request_meta=request_meta,
        )

        logger.info("Worker %s filed report %s on complaint %s", worker.pk, report.pk, complaint.token)
        return complaint, report

    # ── Verification ────────────────────────────────────────────────

    def verify(
        self,
        complaint_id: Any,
        *,
        admin: Any,
        report_id: Any = None,
        note: str = "",
        request_meta: dict[str, Any] | None = None,
    ) -> tuple[Complaint, WorkerReport | None]:
        """
        Accept the worker's report and resolve the complaint.

        Idempotent on status; every call appends its own audit entry.
        """
        return self._review(
            complaint_id, admin=admin, report_id=report_id, note=note,
            accept=True, request_meta=request_meta,
        )

    def reject(
        self,
        complaint_id: Any,
        *,
        admin: Any,
        report_id: Any = None,
        note: str = "",
        request_meta: dict[str, Any] | None = None,
    ) -> tuple[Complaint, WorkerReport | None]:
        """
        Send the complaint back to ``in_progress`` and mark the report
        rejected.
        """
        return self._review(
            complaint_id, admin=admin, report_id=report_id, note=note,
            accept=False, request_meta=request_meta,
        )

    @atomic_transition
    def _review(
        self,
        complaint_id: Any,
        *,
        admin: Any,
        report_id: Any,
        note: str,
        accept: bool,
        request_meta: dict[str, Any] | None,
    ) -> tuple[Complaint, WorkerReport | None]:
        note = _clean_text(note, "note")
        target = ComplaintStatus.RESOLVED if accept else ComplaintStatus.IN_PROGRESS
        complaint = lock_for_update(Complaint, complaint_id, label="Complaint")

        report: WorkerReport | None = None
        if report_id not in (None, ""):
            try:
                report = (
                    WorkerReport.objects.select_for_update()
                    .select_related("worker__user")
                    .get(pk=report_id, complaint=complaint)
                )
            except (WorkerReport.DoesNotExist, ValueError, TypeError):
                raise NotFound(f"Report with id {report_id} not found for complaint {complaint_id}.")
        elif not complaint.reports.exists():
            raise InvalidTransition(
                current=complaint.status,
                target=target,
                reason="no worker report has been submitted",
            )

        now = timezone.now()
        reviewer = admin if getattr(admin, "is_authenticated", False) else None
        previous_status = complaint.status
        complaint.status = target
        complaint.verified_at = now
        complaint.verified_by = reviewer
        update_fields = ["status", "verification_status", "verified_at", "verified_by", "updated_at"]
        if accept:
            complaint.verification_status = VerificationStatus.VERIFIED
            complaint.resolved_at = now
            complaint.resolved_by = reviewer
            complaint.resolution_notes = note
        else:
            # Reopened: an earlier verification no longer stands.
            complaint.verification_status = VerificationStatus.REJECTED
            complaint.resolved_at = None
            complaint.resolved_by = None
            complaint.resolution_notes = ""
        update_fields += ["resolved_at", "resolved_by", "resolution_notes"]
        complaint.save(update_fields=update_fields)

        if report is not None:
            report.status = ReportStatus.REVIEWED if accept else ReportStatus.REJECTED
            report.save(update_fields=["status", "updated_at"])

        self.audit.record(
            complaint_id=complaint.pk,
            actor=describe_actor(admin, default="admin"),
            action=AuditAction.VERIFY_RESOLUTION if accept else AuditAction.REJECT_RESOLUTION,
            payload={
                "report_id": report.pk if report else None,
                "note": note,
                "previous_status": previous_status,
                "new_status": complaint.status,
            },
            request_meta=request_meta,
        )

        reviewed = report or complaint.reports.select_related("worker__user").first()
        if accept:
            self.notifier.dispatch(
                "complaint_verified",
                complaint,
                extra={"note": note, "photo_keys": list(reviewed.photos) if reviewed else []},
            )
        elif reviewed is not None and reviewed.worker.contact_email:
            self.notifier.dispatch(
                "complaint_rejected",
                complaint,
                extra={"note": note, "worker_name": reviewed.worker.display_name},
                recipients=[reviewed.worker.contact_email],
            )

        logger.info(
            "Complaint %s %s by=%s (report=%s)",
            complaint.token, "verified" if accept else "rejected",
            describe_actor(admin, default="admin"), report.pk if report else None,
        )
        return complaint, report

    # ── Admin field patch ───────────────────────────────────────────

    @staticmethod
    def clean_patch(patch: Any) -> dict[str, Any]:
        """
        Validate an admin patch against ``PATCHABLE_FIELDS``.

        Raises ``DomainError`` for an empty patch, unknown fields or bad
        values.
        """
        if not isinstance(patch, dict) or not patch:
            raise DomainError("No fields to update.")
        invalid = [key for key in patch if key not in PATCHABLE_FIELDS]
        if invalid:
            raise DomainError(
                f"Invalid fields: {', '.join(invalid)}. Allowed: {', '.join(PATCHABLE_FIELDS)}."
            )

        cleaned: dict[str, Any] = {}
        for field, value in patch.items():
            if field in _CHOICE_FIELDS:
                cleaned[field] = _clean_choice(value, field)
            elif field == "description":
                value = _clean_text(value, field, max_length=DESCRIPTION_MAX_LENGTH)
                if not value:
                    raise DomainError("description cannot be blank.")
                cleaned[field] = value
            else:
                max_length = Complaint._meta.get_field(field).max_length
                cleaned[field] = _clean_text(value, field, max_length=max_length)
        return cleaned

    @staticmethod
    def _patch_action(changes: dict[str, Any]) -> str:
        if "urgency" in changes:
            return AuditAction.UPDATE_URGENCY
        if "status" in changes:
            return AuditAction.UPDATE_STATUS
        return AuditAction.UPDATE_FIELDS

    @atomic_transition
    def update_fields(
        self,
        complaint_id: Any,
        patch: dict[str, Any],
        *,
        admin: Any,
        expected_updated_at: datetime.datetime | None = None,
        request_meta: dict[str, Any] | None = None,
    ) -> Complaint:
        """
        Admin escape hatch: overwrite any patchable field, including
        ``status``, recording the prior values.
        """
        changes = self.clean_patch(patch)
        complaint = lock_for_update(Complaint, complaint_id, label="Complaint")
        ensure_not_stale(complaint, expected_updated_at)

        previous_values = {field: getattr(complaint, field) for field in changes}
        for field, value in changes.items():
            setattr(complaint, field, value)
        complaint.save(update_fields=[*changes, "updated_at"])

        self.audit.record(
            complaint_id=complaint.pk,
            actor=describe_actor(admin, default="admin"),
            action=self._patch_action(changes),
            payload={"changes": changes, "previous_values": previous_values},
            request_meta=request_meta,
        )

        old_status = previous_values.get("status")
        if "status" in changes and changes["status"] != old_status and complaint.email:
            self.notifier.dispatch(
                "complaint_status_changed",
                complaint,
                extra={"old_status": old_status, "new_status": changes["status"]},
            )

        logger.info(
            "Complaint %s fields %s updated by=%s",
            complaint.token, ", ".join(changes), describe_actor(admin, default="admin"),
        )
        return complaint

    # ── Bulk ────────────────────────────────────────────────────────

    def bulk_apply(
        self,
        action: str,
        ids: list[Any],
        payload: dict[str, Any] | None = None,
        *,
        admin: Any,
        request_meta: dict[str, Any] | None = None,
    ) -> BulkOutcome:
        """
        Apply ``action`` to every id, each in its own transaction.

        Request-level problems (unknown action, empty ids, bad payload)
        raise ``DomainError`` before anything is touched.  Per-id
        failures are collected into the outcome instead of raised.
        """
        if action not in BulkAction.ALL:
            raise DomainError(
                f"Invalid action. Must be: {', '.join(BulkAction.ALL)}."
            )
        if not isinstance(ids, (list, tuple)) or not ids:
            raise DomainError("Missing or invalid action, ids required.")
        payload = payload or {}
        value: str | None = None
        if action == BulkAction.SET_URGENCY:
            if payload.get("urgency") not in ComplaintUrgency.values:
                raise DomainError("Invalid urgency. Must be: high, medium, or low.")
            value = payload["urgency"]
        elif action == BulkAction.GROUP:
            group = payload.get("group")
            if not isinstance(group, str) or not group.strip():
                raise DomainError("Group name required for group action.")
            value = _clean_text(group, "group", max_length=100)

        actor = describe_actor(admin, default="admin")
        results: BulkResults = {"updated": 0, "failed": 0, "errors": []}
        for complaint_id in ids:
            try:
                run_in_atomic(self._bulk_one, action, complaint_id, value, actor, request_meta)
            except DomainError as exc:
                results["failed"] += 1
                results["errors"].append(f"ID {complaint_id}: {exc}")
                logger.warning("Bulk %s failed for complaint %s: %s", action, complaint_id, exc)
            else:
                results["updated"] += 1

        logger.info(
            "Bulk %s by=%s: %d updated, %d failed",
            action, actor, results["updated"], results["failed"],
        )
        return {
            "success": results["failed"] == 0,
            "message": (
                f"Processed {len(ids)} complaints: {results['updated']} successful, "
                f"{results['failed']} failed"
            ),
            "results": results,
        }

    def _bulk_one(
        self,
        action: str,
        complaint_id: Any,
        value: str | None,
        actor: str,
        request_meta: dict[str, Any] | None,
    ) -> None:
        complaint = lock_for_update(Complaint, complaint_id, label="Complaint")
        pk = complaint.pk

        if action == BulkAction.DELETE:
            snapshot = _snapshot(complaint)
            # Assignment and report rows cascade inside this transaction.
            complaint.delete()
            self.audit.record(
                complaint_id=pk,
                actor=actor,
                action=AuditAction.BULK_DELETE,
                payload={"complaint_data": snapshot},
                request_meta=request_meta,
            )
        elif action == BulkAction.SET_URGENCY:
            previous = complaint.urgency
            complaint.urgency = value
            complaint.save(update_fields=["urgency", "updated_at"])
            self.audit.record(
                complaint_id=pk,
                actor=actor,
                action=AuditAction.BULK_SET_URGENCY,
                payload={"urgency": value, "previous_urgency": previous},
                request_meta=request_meta,
            )
        else:
            previous = complaint.group_name
            complaint.group_name = value
            complaint.save(update_fields=["group_name", "updated_at"])
            self.audit.record(
                complaint_id=pk,
                actor=actor,
                action=AuditAction.BULK_GROUP,
                payload={"group_name": value, "previous_group": previous},
                request_meta=request_meta,
            )

    # ── Portal hand-off (stub) ──────────────────────────────────────

    @atomic_transition
    def queue_for_portal(
        self,
        complaint_id: Any,
        *,
        admin: Any,
        request_meta: dict[str, Any] | None = None,
    ) -> Complaint:
        """
        Mark the complaint as handed to the municipal portal.

        No job is actually enqueued; the synthetic ``job_id`` is only
        recorded on the complaint and in the audit log.
        """
        complaint = lock_for_update(Complaint, complaint_id, label="Complaint")
        job_id = str(uuid.uuid4())
        previous_status = complaint.status

        complaint.status = ComplaintStatus.QUEUED_FOR_PORTAL
        complaint.submitted_to_portal = {
            "job_id": job_id,
            "queued_at": timezone.now().isoformat(),
        }
        complaint.save(update_fields=["status", "submitted_to_portal", "updated_at"])

        self.audit.record(
            complaint_id=complaint.pk,
            actor=describe_actor(admin, default="admin"),
            action=AuditAction.QUEUED_FOR_PORTAL,
            payload={"job_id": job_id, "previous_status": previous_status},
            request_meta=request_meta,
        )
        self.notifier.dispatch(
            "complaint_submitted_to_portal", complaint, extra={"job_id": job_id},
        )

        logger.info("Complaint %s queued for portal (job=%s)", complaint.token, job_id)
        return complaint
