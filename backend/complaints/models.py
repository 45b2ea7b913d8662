"""
Complaints app models.

Covers the complaint lifecycle: citizen submission, admin triage and
assignment to a field worker, the worker's resolution report, and the
admin verification that resolves the complaint or sends it back.
"""

import secrets

from django.conf import settings
from django.db import IntegrityError, models, transaction

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ComplaintCategory(models.TextChoices):
    ROADS = "roads", "Roads & Infrastructure"
    WATER = "water", "Water Supply"
    POWER = "power", "Power & Electricity"
    URBAN = "urban", "Urban Planning"
    WELFARE = "welfare", "Social Welfare"
    OTHER = "other", "Other"


class ComplaintUrgency(models.TextChoices):
    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    LOW = "low", "Low"


class ComplaintStatus(models.TextChoices):
    """
    Lifecycle states.

    ``submitted → assigned → in_progress → admin_verification_pending →
    resolved``; a rejected report sends the complaint back to
    ``in_progress``.  ``queued_for_portal`` is the hand-off side branch.
    """

    SUBMITTED = "submitted", "Submitted"
    ASSIGNED = "assigned", "Assigned"
    IN_PROGRESS = "in_progress", "In Progress"
    ADMIN_VERIFICATION_PENDING = "admin_verification_pending", "Pending Verification"
    RESOLVED = "resolved", "Resolved"
    REJECTED = "rejected", "Rejected"
    QUEUED_FOR_PORTAL = "queued_for_portal", "Queued for Portal"


class VerificationStatus(models.TextChoices):
    NONE = "none", "None"
    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    REJECTED = "rejected", "Rejected"


class ReportStatus(models.TextChoices):
    SUBMITTED = "submitted", "Submitted"
    REVIEWED = "reviewed", "Reviewed"
    REJECTED = "rejected", "Rejected"


class AssignmentStatus(models.TextChoices):
    ASSIGNED = "assigned", "Assigned"


DESCRIPTION_MAX_LENGTH = 1000
TOKEN_ATTEMPTS = 5


def generate_tracking_token() -> str:
    """
    Return an unused ``<PREFIX>-<digits>`` tracking token.
    """
    conf = settings.COMPLAINTS
    prefix = conf["TRACKING_TOKEN_PREFIX"]
    length = conf["TRACKING_TOKEN_LENGTH"]
    while True:
        digits = "".join(secrets.choice("0123456789") for _ in range(length))
        token = f"{prefix}-{digits}"
        if not Complaint.objects.filter(token=token).exists():
            return token


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Complaint(TimeStampedModel):
    """
    A citizen-submitted civic issue.

    * ``token`` is the public tracking id used for anonymous lookups.
    * ``attachments`` holds ordered storage keys, never URLs.
    * ``assigned_at`` is set exactly when ``assigned_to`` is set.
    """

    token = models.CharField(
        max_length=20,
        unique=True,
        editable=False,
        verbose_name="Tracking Token",
    )

    # ── Classification ──────────────────────────────────────────────
    category = models.CharField(
        max_length=20,
        choices=ComplaintCategory.choices,
        verbose_name="Category",
        db_index=True,
    )
    subtype = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="Subtype",
    )
    description = models.TextField(
        max_length=DESCRIPTION_MAX_LENGTH,
        verbose_name="Description",
    )
    urgency = models.CharField(
        max_length=10,
        choices=ComplaintUrgency.choices,
        default=ComplaintUrgency.MEDIUM,
        verbose_name="Urgency",
        db_index=True,
    )

    # ── Location ────────────────────────────────────────────────────
    location_text = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Location",
    )
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name="Latitude",
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name="Longitude",
    )

    # ── Citizen / intake ────────────────────────────────────────────
    email = models.EmailField(
        blank=True,
        default="",
        verbose_name="Citizen Email",
    )
    source = models.CharField(
        max_length=20,
        default="web",
        verbose_name="Source",
    )
    attachments = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Attachment Keys",
    )

    # ── Lifecycle ───────────────────────────────────────────────────
    status = models.CharField(
        max_length=30,
        choices=ComplaintStatus.choices,
        default=ComplaintStatus.SUBMITTED,
        verbose_name="Status",
        db_index=True,
    )
    verification_status = models.CharField(
        max_length=10,
        choices=VerificationStatus.choices,
        default=VerificationStatus.NONE,
        verbose_name="Verification Status",
    )
    assigned_to = models.ForeignKey(
        "accounts.Worker",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_complaints",
        verbose_name="Assigned Worker",
    )
    assigned_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Assigned At",
    )
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Resolved At",
    )
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_complaints",
        verbose_name="Resolved By",
    )
    resolution_notes = models.TextField(
        blank=True,
        default="",
        verbose_name="Resolution Notes",
    )
    verified_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Verified At",
    )
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="verified_complaints",
        verbose_name="Verified By",
    )
    group_name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="Group",
        db_index=True,
    )
    submitted_to_portal = models.JSONField(
        null=True,
        blank=True,
        verbose_name="Portal Hand-off",
        help_text="{job_id, queued_at} once queued for the municipal portal.",
    )

    class Meta:
        verbose_name = "Complaint"
        verbose_name_plural = "Complaints"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="complaint_status_created_idx"),
        ]

    def __str__(self):
        return f"{self.token} [{self.get_status_display()}]"

    def save(self, *args, **kwargs):
        if self.token:
            return super().save(*args, **kwargs)
        # Two submissions can draw the same unused token; the unique
        # index decides, the loser draws again.
        for attempt in range(1, TOKEN_ATTEMPTS + 1):
            self.token = generate_tracking_token()
            try:
                with transaction.atomic():
                    return super().save(*args, **kwargs)
            except IntegrityError:
                if attempt == TOKEN_ATTEMPTS:
                    raise


class ComplaintAssignment(models.Model):
    """
    Append-only assignment history.  The complaint's ``assigned_to``
    always mirrors the newest row.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="assignments",
        verbose_name="Complaint",
    )
    assigned_to = models.ForeignKey(
        "accounts.Worker",
        on_delete=models.PROTECT,
        related_name="assignments",
        verbose_name="Assigned To",
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="complaint_assignments_made",
        verbose_name="Assigned By",
    )
    note = models.TextField(
        blank=True,
        default="",
        verbose_name="Note",
    )
    status = models.CharField(
        max_length=10,
        choices=AssignmentStatus.choices,
        default=AssignmentStatus.ASSIGNED,
        verbose_name="Status",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Assigned At",
    )

    class Meta:
        verbose_name = "Complaint Assignment"
        verbose_name_plural = "Complaint Assignments"
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.complaint_id} → {self.assigned_to_id}"


class WorkerReport(TimeStampedModel):
    """
    A worker's findings against an assigned complaint.

    Created only by the assignee; only verification changes ``status``.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="reports",
        verbose_name="Complaint",
    )
    worker = models.ForeignKey(
        "accounts.Worker",
        on_delete=models.PROTECT,
        related_name="reports",
        verbose_name="Worker",
    )
    comments = models.TextField(
        blank=True,
        default="",
        verbose_name="Comments",
    )
    photos = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Photo Keys",
    )
    status = models.CharField(
        max_length=10,
        choices=ReportStatus.choices,
        default=ReportStatus.SUBMITTED,
        verbose_name="Status",
        db_index=True,
    )

    class Meta:
        verbose_name = "Worker Report"
        verbose_name_plural = "Worker Reports"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Report #{self.pk} on {self.complaint_id} by {self.worker_id}"
