"""
Integration tests for core endpoints.

Scope in this file:
- POST /api/core/attachments/
- GET  /api/core/attachments/public/
- GET  /api/core/constants/
"""

from django.apps import apps
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient


def _token(url: str) -> str:
    return url.split("token=", 1)[1]


class TestAttachmentEndpoints(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.storage = apps.get_app_config("core").storage

    def test_single_upload_target(self):
        response = self.client.post(
            reverse("core:attachment-upload"),
            {"filename": "pothole.jpg", "content_type": "image/jpeg"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["key"].startswith("uploads/"))
        self.assertEqual(
            self.storage.resolve_token(_token(response.data["upload_url"]), upload=True),
            response.data["key"],
        )

    def test_batch_upload_targets_keep_order(self):
        response = self.client.post(
            reverse("core:attachment-upload"),
            {"files": [{"filename": "before.jpg"}, {"filename": "after.png", "content_type": "image/png"}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        keys = [target["key"] for target in response.data["targets"]]
        self.assertEqual(len(keys), 2)
        self.assertTrue(keys[0].endswith("-before.jpg"))
        self.assertTrue(keys[1].endswith("-after.png"))

    def test_upload_without_filename(self):
        response = self.client.post(reverse("core:attachment-upload"), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_oversized_batch(self):
        files = [{"filename": f"photo{i}.jpg"} for i in range(11)]
        response = self.client.post(
            reverse("core:attachment-upload"), {"files": files}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_public_url(self):
        response = self.client.get(
            reverse("core:attachment-public-url"), {"key": "uploads/1-ab-pothole.jpg"},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            self.storage.resolve_token(_token(response.data["url"])),
            "uploads/1-ab-pothole.jpg",
        )

    def test_public_url_requires_key(self):
        response = self.client.get(reverse("core:attachment-public-url"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Missing key parameter.")


class TestSystemConstants(TestCase):

    def test_constants_are_public(self):
        response = APIClient().get(reverse("core:system-constants"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(
            {"value": "roads", "label": "Roads & Infrastructure"},
            response.data["complaint_categories"],
        )
        statuses = [item["value"] for item in response.data["complaint_statuses"]]
        self.assertEqual(
            statuses,
            [
                "submitted",
                "assigned",
                "in_progress",
                "admin_verification_pending",
                "resolved",
                "rejected",
                "queued_for_portal",
            ],
        )
        self.assertEqual(len(response.data["complaint_urgencies"]), 3)
        self.assertIn("verification_statuses", response.data)
        self.assertIn("report_statuses", response.data)
