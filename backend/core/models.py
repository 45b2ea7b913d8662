"""
Core app models.

Provides abstract base models and the append-only audit trail shared by
every complaint lifecycle operation.
"""

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class AuditAction(models.TextChoices):
    """Closed taxonomy of state-changing actions recorded in the audit log."""

    COMPLAINT_SUBMITTED = "complaint_submitted", "Complaint Submitted"
    COMPLAINT_ASSIGNED = "complaint_assigned", "Complaint Assigned"
    WORKER_REPORT_SUBMITTED = "worker_report_submitted", "Worker Report Submitted"
    UPDATE_URGENCY = "update_urgency", "Urgency Updated"
    UPDATE_STATUS = "update_status", "Status Updated"
    UPDATE_FIELDS = "update_fields", "Fields Updated"
    VERIFY_RESOLUTION = "verify_resolution", "Resolution Verified"
    REJECT_RESOLUTION = "reject_resolution", "Resolution Rejected"
    BULK_DELETE = "bulk_delete", "Bulk Delete"
    BULK_SET_URGENCY = "bulk_set_urgency", "Bulk Urgency Change"
    BULK_GROUP = "bulk_group", "Bulk Grouping"
    QUEUED_FOR_PORTAL = "queued_for_portal", "Queued for Portal"


class AuditLog(models.Model):
    """
    Immutable record of one state-changing action.

    ``complaint`` is a constraint-free reference so that entries survive
    the deletion of the complaint they describe (``bulk_delete`` keeps the
    deleted row's snapshot in its payload).  Rows are never updated or
    deleted through the ORM.
    """

    complaint = models.ForeignKey(
        "complaints.Complaint",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="audit_logs",
        verbose_name="Complaint",
    )
    actor = models.CharField(
        max_length=255,
        verbose_name="Actor",
        help_text="Email / username of the caller, or 'citizen' for anonymous submissions.",
    )
    action = models.CharField(
        max_length=40,
        choices=AuditAction.choices,
        verbose_name="Action",
        db_index=True,
    )
    payload = models.JSONField(
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
        verbose_name="Payload",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
        db_index=True,
    )

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["complaint", "created_at"], name="auditlog_complaint_created_idx"),
        ]

    def __str__(self):
        return f"[{self.action}] complaint={self.complaint_id} by {self.actor}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit log entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries cannot be deleted.")
