"""
Core app Service Layer.

Cross-cutting services that are not owned by a single bounded context:

- ``AttachmentService``:      upload targets and signed read URLs,
                              delegated to the injected ``BlobStorage``.
- ``SystemConstantsService``: choice enumerations for frontend dropdowns.
"""

from __future__ import annotations

import logging
from typing import Any

from core.domain.exceptions import DomainError
from core.domain.storage import BlobStorage, UploadTarget

logger = logging.getLogger(__name__)

MAX_BATCH_UPLOADS = 10


# ═══════════════════════════════════════════════════════════════════
#  Attachment Service
# ═══════════════════════════════════════════════════════════════════


class AttachmentService:
    """
    Hands out write targets for direct-to-bucket uploads and resolves
    stored keys to time-limited read URLs.  Bytes never pass through
    the API.
    """

    @staticmethod
    def create_upload_targets(
        storage: BlobStorage,
        files: list[dict[str, Any]],
    ) -> list[UploadTarget]:
        """
        Create one upload target per ``{filename, content_type}`` item.

        Raises
        ------
        DomainError
            Empty batch, oversized batch, or an item without a filename.
        """
        if not files:
            raise DomainError("filename is required.")
        if len(files) > MAX_BATCH_UPLOADS:
            raise DomainError(f"At most {MAX_BATCH_UPLOADS} files per request.")

        targets = [
            storage.create_upload_target(item.get("filename", ""), item.get("content_type", ""))
            for item in files
        ]
        logger.info("Issued %d upload target(s)", len(targets))
        return targets

    @staticmethod
    def get_read_url(storage: BlobStorage, key: str) -> str:
        if not key:
            raise DomainError("Missing key parameter.")
        return storage.signed_url(key)


# ═══════════════════════════════════════════════════════════════════
#  System Constants Service
# ═══════════════════════════════════════════════════════════════════


class SystemConstantsService:
    """
    Gathers all complaint choice enumerations into a single dict for
    the frontend.  Stateless and public.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from complaints.models import (
            ComplaintCategory,
            ComplaintStatus,
            ComplaintUrgency,
            ReportStatus,
            VerificationStatus,
        )

        to_list = SystemConstantsService._choices_to_list

        return {
            "complaint_categories": to_list(ComplaintCategory),
            "complaint_statuses": to_list(ComplaintStatus),
            "complaint_urgencies": to_list(ComplaintUrgency),
            "verification_statuses": to_list(VerificationStatus),
            "report_statuses": to_list(ReportStatus),
        }

    @staticmethod
    def _choices_to_list(
        choices_class: type,
    ) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` class to a list of
        ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]
