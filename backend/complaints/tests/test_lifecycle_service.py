"""
Service-level tests for ``ComplaintLifecycleService``.

Each test drives the service directly with the fixtures from the root
``conftest.py``: a recording mail transport, synchronous notification
delivery, and the real ``AuditLogWriter``.  Notifications only go out
once the transaction commits, so the tests that assert on mail wrap the
call in ``django_capture_on_commit_callbacks(execute=True)``.
"""

from __future__ import annotations

import datetime
import re
from unittest import mock

import pytest

from complaints.models import (
    Complaint,
    ComplaintAssignment,
    ComplaintStatus,
    ReportStatus,
    VerificationStatus,
    WorkerReport,
)
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    TransientError,
)
from core.models import AuditAction, AuditLog

pytestmark = pytest.mark.django_db


@pytest.fixture()
def submit(lifecycle):
    def _submit(**overrides) -> Complaint:
        data = {"category": "roads", "description": "Pothole near the bus stop"}
        data.update(overrides)
        return lifecycle.submit(data)

    return _submit


def _actions(complaint_id) -> list[str]:
    return list(
        AuditLog.objects.filter(complaint_id=complaint_id).values_list("action", flat=True)
    )


# ── Submit ──────────────────────────────────────────────────────────


def test_submit_issues_token_and_notifies_citizen(
    lifecycle, recording_transport, django_capture_on_commit_callbacks,
):
    with django_capture_on_commit_callbacks(execute=True):
        complaint = lifecycle.submit(
            {"category": "roads", "description": "Pothole", "email": "a@example.com"}
        )

    assert re.fullmatch(r"PMC-\d{6}", complaint.token)
    assert complaint.status == ComplaintStatus.SUBMITTED
    assert complaint.verification_status == VerificationStatus.NONE
    assert complaint.assigned_to is None
    assert complaint.assigned_at is None

    assert len(recording_transport.sent) == 1
    message = recording_transport.sent[0]
    assert message["to"] == ["a@example.com"]
    assert message["cc"] == ["replies@example.com"]
    assert message["subject"] == f"Complaint Submitted - {complaint.token}"
    assert f"https://civic.example/track/{complaint.token}" in message["text"]

    entry = AuditLog.objects.get(complaint_id=complaint.pk)
    assert entry.action == AuditAction.COMPLAINT_SUBMITTED
    assert entry.actor == "citizen"
    assert entry.payload["has_email"] is True


def test_submit_without_email_sends_nothing(
    lifecycle, recording_transport, django_capture_on_commit_callbacks,
):
    with django_capture_on_commit_callbacks(execute=True):
        lifecycle.submit({"category": "water", "description": "No supply since Monday"})

    assert recording_transport.sent == []


def test_submit_requires_category_and_description(lifecycle):
    with pytest.raises(DomainError, match="Missing required fields"):
        lifecycle.submit({"category": "roads", "description": "   "})
    with pytest.raises(DomainError, match="Missing required fields"):
        lifecycle.submit({"description": "Broken streetlight"})

    assert Complaint.objects.count() == 0
    assert AuditLog.objects.count() == 0


def test_submit_rejects_unknown_category(lifecycle):
    with pytest.raises(DomainError, match="Invalid category"):
        lifecycle.submit({"category": "parks", "description": "Overgrown"})


def test_submit_rejects_malformed_email(lifecycle):
    with pytest.raises(DomainError, match="Invalid email address"):
        lifecycle.submit({"category": "roads", "description": "Pothole", "email": "not-an-email"})

    assert Complaint.objects.count() == 0


def test_submit_draws_a_new_token_on_collision(lifecycle, submit):
    taken = submit()

    with mock.patch(
        "complaints.models.generate_tracking_token",
        side_effect=[taken.token, "PMC-424242"],
    ):
        complaint = submit()

    assert complaint.token == "PMC-424242"
    assert Complaint.objects.count() == 2


def test_submit_gives_up_after_repeated_collisions(lifecycle, submit):
    taken = submit()

    with mock.patch("complaints.models.generate_tracking_token", return_value=taken.token):
        with pytest.raises(TransientError):
            submit()

    assert Complaint.objects.count() == 1
    assert AuditLog.objects.count() == 1


def test_submit_coordinates_travel_together(lifecycle, submit):
    with pytest.raises(DomainError, match="together"):
        lifecycle.submit({"category": "roads", "description": "x", "lat": 18.5})
    with pytest.raises(DomainError, match="out of range"):
        lifecycle.submit({"category": "roads", "description": "x", "lat": 91, "lng": 73.8})

    complaint = submit(lat=18.5204, lng=73.8567)
    complaint.refresh_from_db()
    assert str(complaint.latitude) == "18.520400"
    assert str(complaint.longitude) == "73.856700"


def test_submit_keeps_attachment_keys_in_order(submit):
    complaint = submit(attachments=["uploads/b.jpg", "uploads/a.jpg"])

    complaint.refresh_from_db()
    assert complaint.attachments == ["uploads/b.jpg", "uploads/a.jpg"]


# ── Assign ──────────────────────────────────────────────────────────


def test_assign_sets_worker_and_notifies_them(
    lifecycle, submit, admin_user, make_worker, recording_transport,
    django_capture_on_commit_callbacks,
):
    complaint = submit()
    worker = make_worker(name="Ravi Patil", email="ravi@example.com")

    with django_capture_on_commit_callbacks(execute=True):
        complaint, assignment = lifecycle.assign(
            complaint.pk, worker.pk, assigned_by=admin_user, note="Bring cones",
        )

    assert complaint.status == ComplaintStatus.ASSIGNED
    assert complaint.assigned_to == worker
    assert complaint.assigned_at is not None
    assert assignment.assigned_to == worker
    assert assignment.assigned_by == admin_user
    assert assignment.note == "Bring cones"

    message = recording_transport.sent[-1]
    assert message["to"] == ["ravi@example.com"]
    assert message["cc"] == []
    assert message["subject"] == f"New Complaint Assigned - {complaint.token}"
    assert "https://civic.example/worker/dashboard" in message["text"]
    assert "Bring cones" in message["text"]

    entry = AuditLog.objects.get(complaint_id=complaint.pk, action=AuditAction.COMPLAINT_ASSIGNED)
    assert entry.actor == "admin@example.com"
    assert entry.payload["assigned_to"] == worker.pk
    assert entry.payload["previous_assignee"] is None


def test_assigned_at_is_set_exactly_when_assigned(lifecycle, submit, admin_user, make_worker):
    complaint = submit()
    assert (complaint.assigned_to_id is None) == (complaint.assigned_at is None)

    complaint, _ = lifecycle.assign(complaint.pk, make_worker().pk, assigned_by=admin_user)
    complaint.refresh_from_db()
    assert complaint.assigned_to_id is not None
    assert complaint.assigned_at is not None


def test_assigned_at_invariant_survives_status_override(lifecycle, submit, admin_user, make_worker):
    unassigned = submit()
    assigned, _ = lifecycle.assign(submit().pk, make_worker().pk, assigned_by=admin_user)

    for complaint in (unassigned, assigned):
        lifecycle.update_fields(complaint.pk, {"status": "in_progress"}, admin=admin_user)
        lifecycle.update_fields(complaint.pk, {"status": "submitted"}, admin=admin_user)
        complaint.refresh_from_db()
        assert complaint.status == ComplaintStatus.SUBMITTED
        assert (complaint.assigned_to_id is None) == (complaint.assigned_at is None)

    assert unassigned.assigned_at is None
    assert assigned.assigned_at is not None


def test_assign_rejects_inactive_or_unknown_worker(lifecycle, submit, admin_user, make_worker):
    complaint = submit()
    retired = make_worker(is_active=False)

    with pytest.raises(NotFound, match="not found or inactive"):
        lifecycle.assign(complaint.pk, retired.pk, assigned_by=admin_user)
    with pytest.raises(NotFound):
        lifecycle.assign(complaint.pk, 987654, assigned_by=admin_user)

    complaint.refresh_from_db()
    assert complaint.status == ComplaintStatus.SUBMITTED
    assert not ComplaintAssignment.objects.exists()


def test_assign_unknown_complaint(lifecycle, admin_user, make_worker):
    with pytest.raises(NotFound, match="Complaint with id 424242 not found"):
        lifecycle.assign(424242, make_worker().pk, assigned_by=admin_user)


def test_assign_with_stale_timestamp_conflicts(lifecycle, submit, admin_user, make_worker):
    complaint = submit()
    stale = complaint.updated_at - datetime.timedelta(seconds=30)

    with pytest.raises(Conflict):
        lifecycle.assign(complaint.pk, make_worker().pk, assigned_by=admin_user,
                         expected_updated_at=stale)

    complaint.refresh_from_db()
    lifecycle.assign(complaint.pk, make_worker().pk, assigned_by=admin_user,
                     expected_updated_at=complaint.updated_at)


def test_reassignment_revokes_previous_worker(lifecycle, submit, admin_user, make_worker):
    complaint = submit()
    first = make_worker(name="W1")
    second = make_worker(name="W2")

    lifecycle.assign(complaint.pk, first.pk, assigned_by=admin_user)
    complaint, _ = lifecycle.assign(complaint.pk, second.pk, assigned_by=admin_user)

    history = list(complaint.assignments.values_list("assigned_to_id", flat=True))
    assert history == [first.pk, second.pk]
    assert complaint.assigned_to == second

    with pytest.raises(PermissionDenied):
        lifecycle.submit_report(complaint.pk, worker=first, comments="Fixed")

    entry = AuditLog.objects.filter(action=AuditAction.COMPLAINT_ASSIGNED).last()
    assert entry.payload["previous_assignee"] == first.pk


# ── Worker report ───────────────────────────────────────────────────


def test_report_moves_complaint_to_verification(lifecycle, submit, admin_user, make_worker):
    complaint = submit()
    worker = make_worker()
    lifecycle.assign(complaint.pk, worker.pk, assigned_by=admin_user)

    complaint, report = lifecycle.submit_report(
        complaint.pk, worker=worker, comments="Patched", photos=["uploads/after.jpg"],
    )

    assert complaint.status == ComplaintStatus.ADMIN_VERIFICATION_PENDING
    assert complaint.verification_status == VerificationStatus.PENDING
    assert report.status == ReportStatus.SUBMITTED
    assert report.photos == ["uploads/after.jpg"]
    entry = AuditLog.objects.get(action=AuditAction.WORKER_REPORT_SUBMITTED)
    assert entry.actor == worker.user.email
    assert entry.payload["photos_count"] == 1


def test_report_by_non_assignee_is_forbidden(lifecycle, submit, admin_user, make_worker):
    complaint = submit()
    assignee = make_worker()
    outsider = make_worker()
    lifecycle.assign(complaint.pk, assignee.pk, assigned_by=admin_user)

    with pytest.raises(PermissionDenied, match="not assigned to you"):
        lifecycle.submit_report(complaint.pk, worker=outsider, comments="Done")

    assert not WorkerReport.objects.exists()
    complaint.refresh_from_db()
    assert complaint.status == ComplaintStatus.ASSIGNED


def test_report_requires_content(lifecycle, submit, admin_user, make_worker, settings):
    complaint = submit()
    worker = make_worker()
    lifecycle.assign(complaint.pk, worker.pk, assigned_by=admin_user)

    with pytest.raises(DomainError, match="comments or at least one photo"):
        lifecycle.submit_report(complaint.pk, worker=worker)

    settings.COMPLAINTS = {**settings.COMPLAINTS, "REQUIRE_REPORT_CONTENT": False}
    _, report = lifecycle.submit_report(complaint.pk, worker=worker)
    assert report.comments == ""


# ── Verification ────────────────────────────────────────────────────


@pytest.fixture()
def reported(lifecycle, submit, admin_user, make_worker):
    """A complaint with one submitted report, plus its worker."""

    def _make(**overrides):
        complaint = submit(**overrides)
        worker = make_worker(name="Asha Kulkarni", email="asha@example.com")
        lifecycle.assign(complaint.pk, worker.pk, assigned_by=admin_user)
        complaint, report = lifecycle.submit_report(
            complaint.pk, worker=worker, comments="Resurfaced", photos=["uploads/fixed.jpg"],
        )
        return complaint, report, worker

    return _make


def test_verify_resolves_and_emails_citizen(
    lifecycle, reported, admin_user, recording_transport, django_capture_on_commit_callbacks,
):
    complaint, report, _ = reported(email="citizen@example.com")

    with django_capture_on_commit_callbacks(execute=True):
        complaint, reviewed = lifecycle.verify(
            complaint.pk, admin=admin_user, report_id=report.pk, note="Looks good",
        )

    assert complaint.status == ComplaintStatus.RESOLVED
    assert complaint.verification_status == VerificationStatus.VERIFIED
    assert complaint.resolved_by == admin_user
    assert complaint.resolution_notes == "Looks good"
    assert complaint.verified_at is not None
    assert reviewed.status == ReportStatus.REVIEWED

    message = recording_transport.sent[-1]
    assert message["to"] == ["citizen@example.com"]
    assert message["cc"] == ["replies@example.com"]
    assert message["subject"] == f"Complaint Resolved - {complaint.token}"
    assert "https://storage.example/test-bucket/object?token=" in message["text"]


def test_verify_without_citizen_email_goes_to_admins(
    lifecycle, reported, admin_user, recording_transport, django_capture_on_commit_callbacks,
):
    complaint, _, _ = reported()

    with django_capture_on_commit_callbacks(execute=True):
        lifecycle.verify(complaint.pk, admin=admin_user)

    message = recording_transport.sent[-1]
    assert message["to"] == ["ops@example.com"]
    assert message["subject"] == f"[ADMIN] Complaint Resolved - {complaint.token}"


def test_verify_twice_is_idempotent_but_audited_twice(lifecycle, reported, admin_user):
    complaint, report, _ = reported()

    lifecycle.verify(complaint.pk, admin=admin_user, report_id=report.pk)
    complaint, _ = lifecycle.verify(complaint.pk, admin=admin_user, report_id=report.pk)

    assert complaint.status == ComplaintStatus.RESOLVED
    assert AuditLog.objects.filter(
        complaint_id=complaint.pk, action=AuditAction.VERIFY_RESOLUTION,
    ).count() == 2


def test_verify_without_any_report_is_invalid(lifecycle, submit, admin_user):
    complaint = submit()

    with pytest.raises(InvalidTransition):
        lifecycle.verify(complaint.pk, admin=admin_user)

    complaint.refresh_from_db()
    assert complaint.status == ComplaintStatus.SUBMITTED


def test_verify_with_report_of_another_complaint(lifecycle, reported, admin_user):
    complaint, _, _ = reported()
    _, other_report, _ = reported()

    with pytest.raises(NotFound):
        lifecycle.verify(complaint.pk, admin=admin_user, report_id=other_report.pk)


def test_reject_sends_back_and_emails_worker(
    lifecycle, reported, admin_user, recording_transport, django_capture_on_commit_callbacks,
):
    complaint, report, worker = reported(email="citizen@example.com")

    with django_capture_on_commit_callbacks(execute=True):
        complaint, reviewed = lifecycle.reject(
            complaint.pk, admin=admin_user, report_id=report.pk, note="needs more photos",
        )

    assert complaint.status == ComplaintStatus.IN_PROGRESS
    assert complaint.verification_status == VerificationStatus.REJECTED
    assert complaint.resolved_at is None
    assert reviewed.status == ReportStatus.REJECTED

    message = recording_transport.sent[-1]
    assert message["to"] == ["asha@example.com"]
    assert message["subject"] == f"Resolution Report Rejected - {complaint.token}"
    assert "needs more photos" in message["text"]

    # The assignee may report again after a rejection.
    complaint, _ = lifecycle.submit_report(complaint.pk, worker=worker, comments="More photos")
    assert complaint.status == ComplaintStatus.ADMIN_VERIFICATION_PENDING


def test_reject_after_verify_clears_resolution(lifecycle, reported, admin_user):
    complaint, report, _ = reported()
    lifecycle.verify(complaint.pk, admin=admin_user, report_id=report.pk, note="Looks fixed")

    complaint, _ = lifecycle.reject(complaint.pk, admin=admin_user, note="Still leaking")

    complaint.refresh_from_db()
    assert complaint.status == ComplaintStatus.IN_PROGRESS
    assert complaint.verification_status == VerificationStatus.REJECTED
    assert complaint.resolved_at is None
    assert complaint.resolved_by is None
    assert complaint.resolution_notes == ""
    assert complaint.verified_at is not None


def test_full_round_trip_audit_order(lifecycle, reported, admin_user):
    complaint, _, _ = reported()
    lifecycle.verify(complaint.pk, admin=admin_user)

    assert _actions(complaint.pk) == [
        AuditAction.COMPLAINT_SUBMITTED,
        AuditAction.COMPLAINT_ASSIGNED,
        AuditAction.WORKER_REPORT_SUBMITTED,
        AuditAction.VERIFY_RESOLUTION,
    ]


# ── Admin field patch ───────────────────────────────────────────────


def test_update_fields_derives_audit_action(lifecycle, submit, admin_user):
    complaint = submit()

    lifecycle.update_fields(complaint.pk, {"urgency": "high", "status": "in_progress"}, admin=admin_user)
    lifecycle.update_fields(complaint.pk, {"status": "resolved"}, admin=admin_user)
    lifecycle.update_fields(complaint.pk, {"group_name": "Ward 12"}, admin=admin_user)

    assert _actions(complaint.pk)[1:] == [
        AuditAction.UPDATE_URGENCY,
        AuditAction.UPDATE_STATUS,
        AuditAction.UPDATE_FIELDS,
    ]
    status_entry = AuditLog.objects.get(action=AuditAction.UPDATE_STATUS)
    assert status_entry.payload["changes"] == {"status": "resolved"}
    assert status_entry.payload["previous_values"] == {"status": "in_progress"}


def test_update_fields_rejects_unknown_or_empty_patch(lifecycle, submit, admin_user):
    complaint = submit()

    with pytest.raises(DomainError, match="Invalid fields: token"):
        lifecycle.update_fields(complaint.pk, {"token": "PMC-000000"}, admin=admin_user)
    with pytest.raises(DomainError, match="No fields to update"):
        lifecycle.update_fields(complaint.pk, {}, admin=admin_user)
    with pytest.raises(DomainError, match="Invalid urgency"):
        lifecycle.update_fields(complaint.pk, {"urgency": "critical"}, admin=admin_user)


def test_update_fields_stale_write_conflicts(lifecycle, submit, admin_user):
    complaint = submit()
    stale = complaint.updated_at - datetime.timedelta(minutes=1)

    with pytest.raises(Conflict):
        lifecycle.update_fields(complaint.pk, {"urgency": "low"}, admin=admin_user,
                                expected_updated_at=stale)

    complaint.refresh_from_db()
    assert complaint.urgency == "medium"


def test_status_change_notifies_citizen(
    lifecycle, submit, admin_user, recording_transport, django_capture_on_commit_callbacks,
):
    complaint = submit(email="citizen@example.com")

    with django_capture_on_commit_callbacks(execute=True):
        lifecycle.update_fields(complaint.pk, {"status": "in_progress"}, admin=admin_user)

    message = recording_transport.sent[-1]
    assert message["subject"] == f"Complaint Status Updated - {complaint.token}"
    assert "Submitted -> In Progress" in message["text"]


# ── Bulk ────────────────────────────────────────────────────────────


def test_bulk_set_urgency_collects_per_id_failures(lifecycle, submit, admin_user):
    first, second = submit(), submit()

    outcome = lifecycle.bulk_apply(
        "set_urgency", [first.pk, second.pk, 999999], {"urgency": "high"}, admin=admin_user,
    )

    assert outcome["success"] is False
    assert outcome["results"]["updated"] == 2
    assert outcome["results"]["failed"] == 1
    assert outcome["results"]["errors"] == ["ID 999999: Complaint with id 999999 not found."]
    assert outcome["message"] == "Processed 3 complaints: 2 successful, 1 failed"
    assert set(Complaint.objects.values_list("urgency", flat=True)) == {"high"}


def test_bulk_group_sets_group_name(lifecycle, submit, admin_user):
    complaint = submit()

    outcome = lifecycle.bulk_apply("group", [complaint.pk], {"group": "Monsoon drive"}, admin=admin_user)

    assert outcome["success"] is True
    complaint.refresh_from_db()
    assert complaint.group_name == "Monsoon drive"
    entry = AuditLog.objects.get(action=AuditAction.BULK_GROUP)
    assert entry.payload == {"group_name": "Monsoon drive", "previous_group": ""}


def test_bulk_delete_keeps_audit_snapshot(lifecycle, reported, admin_user):
    complaint, _, _ = reported()
    pk = complaint.pk

    outcome = lifecycle.bulk_apply("delete", [pk], admin=admin_user)

    assert outcome["results"]["updated"] == 1
    assert not Complaint.objects.filter(pk=pk).exists()
    assert not WorkerReport.objects.filter(complaint_id=pk).exists()
    entry = AuditLog.objects.get(complaint_id=pk, action=AuditAction.BULK_DELETE)
    assert entry.payload["complaint_data"]["token"] == complaint.token
    # Earlier history survives the delete.
    assert AuditLog.objects.filter(complaint_id=pk).count() == 4


@pytest.mark.parametrize(
    ("action", "ids", "payload", "message"),
    [
        ("archive", [1], {}, "Invalid action"),
        ("delete", [], {}, "ids required"),
        ("set_urgency", [1], {"urgency": "urgent"}, "Invalid urgency"),
        ("group", [1], {"group": "  "}, "Group name required"),
    ],
)
def test_bulk_request_validation(lifecycle, admin_user, action, ids, payload, message):
    with pytest.raises(DomainError, match=message):
        lifecycle.bulk_apply(action, ids, payload, admin=admin_user)


# ── Portal hand-off ─────────────────────────────────────────────────


def test_queue_for_portal_records_job(
    lifecycle, submit, admin_user, recording_transport, django_capture_on_commit_callbacks,
):
    complaint = submit()

    with django_capture_on_commit_callbacks(execute=True):
        complaint = lifecycle.queue_for_portal(complaint.pk, admin=admin_user)

    assert complaint.status == ComplaintStatus.QUEUED_FOR_PORTAL
    job_id = complaint.submitted_to_portal["job_id"]
    entry = AuditLog.objects.get(action=AuditAction.QUEUED_FOR_PORTAL)
    assert entry.payload["job_id"] == job_id
    assert entry.payload["previous_status"] == ComplaintStatus.SUBMITTED

    message = recording_transport.sent[-1]
    assert message["subject"] == f"[ADMIN] Complaint Submitted to PMC Portal - {complaint.token}"
    assert job_id in message["text"]
