"""
Complaints app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/', include('complaints.urls')),

Endpoint Map
------------
    POST   /complaints/                        → create (anonymous)
    GET    /complaints/                        → list (admin)
    GET    /complaints/{id}/                   → retrieve (admin)
    PATCH  /complaints/{id}/                   → partial_update (admin)
    GET    /complaints/track/{token}/          → track (anonymous)
    POST   /complaints/bulk/                   → bulk (admin)
    POST   /complaints/{id}/assign/            → assign (admin)
    GET    /complaints/{id}/assignments/       → assignments (admin)
    GET    /complaints/{id}/audit-log/         → audit_log (admin)
    POST   /complaints/{id}/report/            → report (worker)
    GET    /complaints/reports/                → reports (admin)
    POST   /complaints/{id}/verify/            → verify (admin)
    GET    /complaints/assigned/               → assigned (worker)
    POST   /complaints/{id}/submit-to-portal/  → submit_to_portal (admin)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ComplaintViewSet

app_name = "complaints"

router = DefaultRouter()
router.register(r"complaints", ComplaintViewSet, basename="complaint")

urlpatterns = [
    path("", include(router.urls)),
]
