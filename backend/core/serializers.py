"""
Core app serializers.

Request serializers for the attachment endpoints and response
serializers for the system constants and the audit trail.
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .models import AuditLog


# ════════════════════════════════════════════════════════════════════
#  Attachments
# ════════════════════════════════════════════════════════════════════

class UploadFileSerializer(serializers.Serializer):
    """
    One file the client intends to upload.

    Example::

        {"filename": "pothole.jpg", "content_type": "image/jpeg"}
    """

    filename = serializers.CharField(max_length=255)
    content_type = serializers.CharField(
        max_length=100,
        required=False,
        allow_blank=True,
        default="application/octet-stream",
    )


class UploadRequestSerializer(serializers.Serializer):
    """
    Either a single ``filename`` / ``content_type`` pair or a batch under
    ``files``.
    """

    filename = serializers.CharField(max_length=255, required=False)
    content_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    files = UploadFileSerializer(many=True, required=False)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if "files" not in attrs and not attrs.get("filename"):
            raise serializers.ValidationError({"filename": "filename is required."})
        return attrs


class UploadTargetSerializer(serializers.Serializer):
    upload_url = serializers.CharField(
        help_text="Signed URL the client PUTs the bytes to.",
    )
    key = serializers.CharField(
        help_text="Opaque storage key to send back with the complaint or report.",
    )


class SignedUrlSerializer(serializers.Serializer):
    url = serializers.CharField(help_text="Time-limited read URL.")


# ════════════════════════════════════════════════════════════════════
#  System Constants
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single key-label pair representing one choice/enum option.

    Example::

        {"value": "roads", "label": "Roads & Infrastructure"}
    """

    value = serializers.CharField(
        help_text="Machine-readable value to send in API requests.",
    )
    label = serializers.CharField(
        help_text="Human-readable display label for the UI.",
    )


class SystemConstantsSerializer(serializers.Serializer):
    """
    Response serializer for ``GET /api/core/constants/``.
    """

    complaint_categories = ChoiceItemSerializer(many=True)
    complaint_statuses = ChoiceItemSerializer(many=True)
    complaint_urgencies = ChoiceItemSerializer(many=True)
    verification_statuses = ChoiceItemSerializer(many=True)
    report_statuses = ChoiceItemSerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  Audit Trail
# ════════════════════════════════════════════════════════════════════

class AuditLogSerializer(serializers.ModelSerializer):
    action_display = serializers.CharField(source="get_action_display", read_only=True)

    class Meta:
        model = AuditLog
        fields = ["id", "complaint", "actor", "action", "action_display", "payload", "created_at"]
        read_only_fields = fields
