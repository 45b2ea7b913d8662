"""
Unit tests for the ``core.domain`` building blocks: exception mapping,
transaction helpers, the audit log writer and role helpers.
"""

from __future__ import annotations

import datetime
from unittest import mock

import pytest
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError
from rest_framework.exceptions import ValidationError

from complaints.models import Complaint
from core.domain.access import describe_actor, get_user_role_name, require_role
from core.domain.audit import AuditLogWriter, validate_payload
from core.domain.exception_handler import domain_exception_handler
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    TransientError,
)
from core.domain.transactions import ensure_not_stale, lock_for_update, run_in_atomic
from core.models import AuditAction, AuditLog


# ── Exception handler ───────────────────────────────────────────────


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (DomainError("bad input"), 400),
        (PermissionDenied("not yours"), 403),
        (NotFound("missing"), 404),
        (Conflict("stale"), 409),
        (InvalidTransition(current="submitted", target="resolved"), 409),
        (TransientError("db down"), 503),
    ],
)
def test_domain_exceptions_map_to_status(exc, status_code):
    response = domain_exception_handler(exc, {})

    assert response.status_code == status_code
    assert response.data == {"detail": str(exc)}


def test_drf_exceptions_keep_default_handling():
    response = domain_exception_handler(ValidationError({"field": ["required"]}), {})

    assert response.status_code == 400
    assert response.data == {"field": ["required"]}


def test_data_store_errors_become_service_unavailable():
    response = domain_exception_handler(DatabaseError("connection reset"), {})

    assert response.status_code == 503
    assert response.data == {"detail": "The data store is temporarily unavailable. Please retry."}


def test_unrelated_exceptions_are_left_alone():
    assert domain_exception_handler(RuntimeError("boom"), {}) is None


def test_invalid_transition_message():
    exc = InvalidTransition(current="submitted", target="resolved", reason="no report")

    assert str(exc) == "Invalid state transition from 'submitted' to 'resolved' (no report)."
    assert isinstance(exc, Conflict)


# ── Transactions ────────────────────────────────────────────────────


@pytest.mark.django_db
def test_lock_for_update_not_found():
    with pytest.raises(NotFound, match="Complaint with id 31337 not found"):
        run_in_atomic(lock_for_update, Complaint, 31337)
    with pytest.raises(NotFound):
        run_in_atomic(lock_for_update, Complaint, "not-a-number")


@pytest.mark.django_db
def test_run_in_atomic_reports_data_store_failures():
    def create_then_fail():
        Complaint.objects.create(category="roads", description="x")
        raise DatabaseError("disk full")

    with pytest.raises(TransientError, match="temporarily unavailable"):
        run_in_atomic(create_then_fail)

    assert not Complaint.objects.exists()


@pytest.mark.django_db
def test_ensure_not_stale():
    complaint = Complaint.objects.create(category="roads", description="x")

    ensure_not_stale(complaint, None)
    ensure_not_stale(complaint, complaint.updated_at)
    with pytest.raises(Conflict, match="refresh and retry"):
        ensure_not_stale(complaint, complaint.updated_at - datetime.timedelta(seconds=1))


@pytest.mark.django_db
def test_run_in_atomic_rolls_back_on_error():
    def create_then_fail():
        Complaint.objects.create(category="roads", description="x")
        raise DomainError("nope")

    with pytest.raises(DomainError):
        run_in_atomic(create_then_fail)

    assert not Complaint.objects.exists()


# ── Audit log writer ────────────────────────────────────────────────


def test_validate_payload_rejects_missing_keys():
    with pytest.raises(ValueError, match="missing keys: previous_urgency"):
        validate_payload(AuditAction.BULK_SET_URGENCY, {"urgency": "high"})
    with pytest.raises(ValueError, match="Unknown audit action"):
        validate_payload("complaint_archived", {})


@pytest.mark.django_db
def test_record_merges_request_meta():
    entry = AuditLogWriter().record(
        complaint_id=7,
        actor="admin@example.com",
        action=AuditAction.BULK_GROUP,
        payload={"group_name": "Ward 3", "previous_group": ""},
        request_meta={"user_agent": "pytest"},
    )

    entry.refresh_from_db()
    assert entry.payload == {"group_name": "Ward 3", "previous_group": "", "user_agent": "pytest"}
    assert entry.complaint_id == 7


@pytest.mark.django_db
def test_record_wraps_database_errors():
    with mock.patch.object(AuditLog.objects, "create", side_effect=DatabaseError("disk full")):
        with pytest.raises(TransientError):
            AuditLogWriter().record(
                complaint_id=1,
                actor="admin",
                action=AuditAction.BULK_GROUP,
                payload={"group_name": "g", "previous_group": ""},
            )


@pytest.mark.django_db
def test_audit_entries_are_append_only():
    entry = AuditLogWriter().record(
        complaint_id=None,
        actor="admin",
        action=AuditAction.BULK_GROUP,
        payload={"group_name": "g", "previous_group": ""},
    )

    entry.actor = "someone-else"
    with pytest.raises(ValueError, match="append-only"):
        entry.save()
    with pytest.raises(ValueError, match="cannot be deleted"):
        entry.delete()


# ── Access helpers ──────────────────────────────────────────────────


@pytest.mark.django_db
def test_role_resolution(create_user):
    admin = create_user(role="admin")
    worker = create_user(role="worker")
    superuser = create_user(is_superuser=True)

    assert get_user_role_name(admin) == "admin"
    assert get_user_role_name(worker) == "worker"
    assert get_user_role_name(superuser) == "admin"
    assert get_user_role_name(AnonymousUser()) is None

    require_role(admin, "admin")
    with pytest.raises(PermissionDenied, match="Role 'worker' is not permitted"):
        require_role(worker, "admin")


@pytest.mark.django_db
def test_describe_actor(create_user):
    user = create_user(username="ops", email="ops@example.com")

    assert describe_actor(user) == "ops@example.com"
    assert describe_actor(AnonymousUser()) == "citizen"
    assert describe_actor(None, default="admin") == "admin"
