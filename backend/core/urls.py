"""
Core app URL configuration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
POST /api/core/attachments/          Signed upload target(s) for direct uploads.
GET  /api/core/attachments/public/   Signed read URL for a stored key.
GET  /api/core/constants/            Choice enumerations for frontend dropdowns.
"""

from django.urls import path

from . import views

app_name = "core"

urlpatterns = [
    # ── Attachments ──────────────────────────────────────────────────
    path(
        "attachments/",
        views.AttachmentUploadView.as_view(),
        name="attachment-upload",
    ),
    path(
        "attachments/public/",
        views.AttachmentPublicUrlView.as_view(),
        name="attachment-public-url",
    ),

    # ── System Constants / Enums ─────────────────────────────────────
    path(
        "constants/",
        views.SystemConstantsView.as_view(),
        name="system-constants",
    ),
]
