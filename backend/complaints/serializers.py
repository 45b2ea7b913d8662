"""
Complaints app serializers.

Serializers handle field definitions, read/write constraints and
field-level validation only.  Lifecycle rules (who may report, which
transitions are legal, what gets audited) live in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Complaint read serializers (admin, public tracking)
3. Write serializers (submit, patch, assign, report, verify, bulk)
4. Sub-resource serializers (assignment history, worker reports)
"""

from __future__ import annotations

import re
from typing import Any

from rest_framework import serializers

from .models import (
    DESCRIPTION_MAX_LENGTH,
    Complaint,
    ComplaintAssignment,
    ComplaintCategory,
    ComplaintStatus,
    ComplaintUrgency,
    ReportStatus,
    WorkerReport,
)
from .services import PATCHABLE_FIELDS, BulkAction

# ``"<lat>, <lng>"`` typed into the free-text location box.
_COORDS_REGEX = re.compile(r"(-?\d+\.\d+)\s*,\s*(-?\d+\.\d+)")

_ALL = [("all", "All")]


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/complaints/``.

    All fields are optional; ``all`` disables a choice filter.
    """

    status = serializers.ChoiceField(choices=_ALL + ComplaintStatus.choices, required=False)
    category = serializers.ChoiceField(choices=_ALL + ComplaintCategory.choices, required=False)
    urgency = serializers.ChoiceField(choices=_ALL + ComplaintUrgency.choices, required=False)
    group_name = serializers.CharField(required=False, max_length=100)
    assigned_to = serializers.IntegerField(required=False, min_value=1,
                                           help_text="PK of the assigned worker.")
    created_after = serializers.DateTimeField(required=False)
    created_before = serializers.DateTimeField(required=False)
    search = serializers.CharField(required=False, max_length=255)
    limit = serializers.IntegerField(required=False, min_value=1)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        after = attrs.get("created_after")
        before = attrs.get("created_before")
        if after and before and after > before:
            raise serializers.ValidationError(
                "created_after must be earlier than created_before."
            )
        return attrs


class ReportFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=_ALL + ReportStatus.choices,
        required=False,
        default=ReportStatus.SUBMITTED,
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Complaint Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintSerializer(serializers.ModelSerializer):
    """
    Canonical complaint representation returned by every admin read and
    every write.

    ``lat`` / ``lng`` come from the stored point or, failing that, from
    a ``"<lat>, <lng>"`` pair in ``location_text``.
    """

    category_display = serializers.CharField(source="get_category_display", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    assigned_to_name = serializers.CharField(
        source="assigned_to.display_name", read_only=True, default=None,
    )
    lat = serializers.SerializerMethodField()
    lng = serializers.SerializerMethodField()

    class Meta:
        model = Complaint
        fields = [
            "id",
            "token",
            "category",
            "category_display",
            "subtype",
            "description",
            "urgency",
            "location_text",
            "lat",
            "lng",
            "email",
            "source",
            "attachments",
            "status",
            "status_display",
            "verification_status",
            "assigned_to",
            "assigned_to_name",
            "assigned_at",
            "resolved_at",
            "resolved_by",
            "resolution_notes",
            "verified_at",
            "verified_by",
            "group_name",
            "submitted_to_portal",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def _point(self, obj: Complaint) -> tuple[float | None, float | None]:
        if obj.latitude is not None and obj.longitude is not None:
            return float(obj.latitude), float(obj.longitude)
        match = _COORDS_REGEX.search((obj.location_text or "").strip())
        if match:
            return float(match.group(1)), float(match.group(2))
        return None, None

    def get_lat(self, obj: Complaint) -> float | None:
        return self._point(obj)[0]

    def get_lng(self, obj: Complaint) -> float | None:
        return self._point(obj)[1]


class ComplaintTrackingSerializer(serializers.ModelSerializer):
    """
    Public view for anonymous token lookups.  Omits the citizen email
    and staff identities; attachments are resolved to signed read URLs
    through the ``storage`` passed in the serializer context.
    """

    category_display = serializers.CharField(source="get_category_display", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    attachment_urls = serializers.SerializerMethodField()

    class Meta:
        model = Complaint
        fields = [
            "token",
            "category",
            "category_display",
            "subtype",
            "description",
            "urgency",
            "location_text",
            "status",
            "status_display",
            "verification_status",
            "resolution_notes",
            "resolved_at",
            "attachment_urls",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_attachment_urls(self, obj: Complaint) -> list[str]:
        storage = self.context.get("storage")
        if storage is None:
            return []
        return [storage.signed_url(key) for key in obj.attachments or []]


# ═══════════════════════════════════════════════════════════════════
#  3. Write Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintCreateSerializer(serializers.Serializer):
    """
    Citizen submission.  ``lat`` and ``lng`` travel together.
    """

    category = serializers.ChoiceField(choices=ComplaintCategory.choices)
    subtype = serializers.CharField(required=False, allow_blank=True, max_length=100)
    description = serializers.CharField(max_length=DESCRIPTION_MAX_LENGTH)
    urgency = serializers.ChoiceField(choices=ComplaintUrgency.choices, required=False)
    location_text = serializers.CharField(required=False, allow_blank=True, max_length=500)
    lat = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    attachments = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        default=list,
        help_text="Storage keys returned by the attachment upload endpoint.",
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if (attrs.get("lat") is None) != (attrs.get("lng") is None):
            raise serializers.ValidationError("lat and lng must be provided together.")
        return attrs


class ComplaintUpdateSerializer(serializers.Serializer):
    """
    Admin field patch.  Only the allow-listed fields may appear;
    ``expected_updated_at`` is an optional stale-write guard.
    """

    urgency = serializers.ChoiceField(choices=ComplaintUrgency.choices, required=False)
    status = serializers.ChoiceField(choices=ComplaintStatus.choices, required=False)
    description = serializers.CharField(required=False, max_length=DESCRIPTION_MAX_LENGTH)
    category = serializers.ChoiceField(choices=ComplaintCategory.choices, required=False)
    subtype = serializers.CharField(required=False, allow_blank=True, max_length=100)
    location_text = serializers.CharField(required=False, allow_blank=True, max_length=500)
    group_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    expected_updated_at = serializers.DateTimeField(required=False)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        unknown = [
            key for key in self.initial_data
            if key not in PATCHABLE_FIELDS and key != "expected_updated_at"
        ]
        if unknown:
            raise serializers.ValidationError(
                f"Invalid fields: {', '.join(unknown)}. Allowed: {', '.join(PATCHABLE_FIELDS)}."
            )
        if not any(key in attrs for key in PATCHABLE_FIELDS):
            raise serializers.ValidationError("No fields to update.")
        return attrs


class AssignSerializer(serializers.Serializer):
    worker_id = serializers.IntegerField(min_value=1, help_text="PK of an active worker.")
    note = serializers.CharField(required=False, allow_blank=True, default="")
    expected_updated_at = serializers.DateTimeField(required=False)


class ReportCreateSerializer(serializers.Serializer):
    comments = serializers.CharField(required=False, allow_blank=True, default="")
    photos = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        default=list,
        help_text="Ordered storage keys of the evidence photos.",
    )


class VerifySerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=[("verify", "Verify"), ("reject", "Reject")])
    report_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    note = serializers.CharField(required=False, allow_blank=True, default="")


class BulkActionSerializer(serializers.Serializer):
    """
    ``payload`` carries ``urgency`` for ``set_urgency`` and ``group`` for
    ``group``; the service validates it against the action.
    """

    action = serializers.ChoiceField(choices=[(a, a) for a in BulkAction.ALL])
    ids = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    payload = serializers.DictField(required=False, default=dict)


class BulkResultsSerializer(serializers.Serializer):
    updated = serializers.IntegerField()
    failed = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.CharField())


class BulkOutcomeSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
    results = BulkResultsSerializer()


# ═══════════════════════════════════════════════════════════════════
#  4. Sub-resource Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintAssignmentSerializer(serializers.ModelSerializer):
    assigned_to_name = serializers.CharField(source="assigned_to.display_name", read_only=True)
    assigned_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ComplaintAssignment
        fields = [
            "id",
            "complaint",
            "assigned_to",
            "assigned_to_name",
            "assigned_by",
            "assigned_by_name",
            "note",
            "status",
            "created_at",
        ]
        read_only_fields = fields

    def get_assigned_by_name(self, obj: ComplaintAssignment) -> str | None:
        if obj.assigned_by is None:
            return None
        return obj.assigned_by.email or obj.assigned_by.username


class WorkerReportSerializer(serializers.ModelSerializer):
    worker_name = serializers.CharField(source="worker.display_name", read_only=True)
    complaint_token = serializers.CharField(source="complaint.token", read_only=True)

    class Meta:
        model = WorkerReport
        fields = [
            "id",
            "complaint",
            "complaint_token",
            "worker",
            "worker_name",
            "comments",
            "photos",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AssignedComplaintSerializer(ComplaintSerializer):
    """Worker dashboard row: the complaint plus its latest report status."""

    latest_report_status = serializers.SerializerMethodField()

    class Meta(ComplaintSerializer.Meta):
        fields = ComplaintSerializer.Meta.fields + ["latest_report_status"]
        read_only_fields = fields

    def get_latest_report_status(self, obj: Complaint) -> str | None:
        reports = sorted(obj.reports.all(), key=lambda r: (r.created_at, r.pk), reverse=True)
        return reports[0].status if reports else None
