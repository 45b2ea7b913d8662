"""
Complaints app views.

``ComplaintViewSet`` exposes the lifecycle as REST actions.  Each
handler validates input with a serializer, makes one service call, and
returns the canonical complaint (plus the created sub-entity where
there is one).  Domain exceptions raised by the services are mapped to
HTTP responses by ``core.domain.exception_handler``.

Role gates are DRF permission classes resolved per action; the
ownership rule for worker reports is enforced in the service.
"""

from __future__ import annotations

from django.apps import apps
from django.conf import settings
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    inline_serializer,
)
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsWorker
from accounts.services import WorkerRosterService
from core.serializers import AuditLogSerializer

from .serializers import (
    AssignedComplaintSerializer,
    AssignSerializer,
    BulkActionSerializer,
    BulkOutcomeSerializer,
    ComplaintAssignmentSerializer,
    ComplaintCreateSerializer,
    ComplaintFilterSerializer,
    ComplaintSerializer,
    ComplaintTrackingSerializer,
    ComplaintUpdateSerializer,
    ReportCreateSerializer,
    ReportFilterSerializer,
    VerifySerializer,
    WorkerReportSerializer,
)
from .services import ComplaintLifecycleService, ComplaintQueryService


def get_lifecycle_service() -> ComplaintLifecycleService:
    """The process-wide service built in ``ComplaintsConfig.ready``."""
    return apps.get_app_config("complaints").lifecycle


def _request_meta(request: Request) -> dict:
    return {"user_agent": request.META.get("HTTP_USER_AGENT")}


class ComplaintViewSet(viewsets.ViewSet):
    """
    /api/complaints/

    Uses ``viewsets.ViewSet`` so every action is explicitly defined.

    Permission Strategy
    -------------------
    * ``create`` and ``track``: anonymous.
    * ``report`` and ``assigned``: accounts holding the worker role.
    * everything else: admins.
    """

    _PUBLIC_ACTIONS = {"create", "track"}
    _WORKER_ACTIONS = {"report", "assigned"}

    def get_permissions(self):
        if self.action in self._PUBLIC_ACTIONS:
            return [AllowAny()]
        if self.action in self._WORKER_ACTIONS:
            return [IsAuthenticated(), IsWorker()]
        return [IsAuthenticated(), IsAdmin()]

    # ── Standard actions ─────────────────────────────────────────────

    @extend_schema(
        summary="List complaints",
        description="Filter and paginate complaints, newest first. Admin only.",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Complaint status, or 'all'."),
            OpenApiParameter(name="category", type=str, location=OpenApiParameter.QUERY, description="Category, or 'all'."),
            OpenApiParameter(name="urgency", type=str, location=OpenApiParameter.QUERY, description="Urgency, or 'all'."),
            OpenApiParameter(name="group_name", type=str, location=OpenApiParameter.QUERY, description="Exact group name."),
            OpenApiParameter(name="assigned_to", type=int, location=OpenApiParameter.QUERY, description="Assigned worker PK."),
            OpenApiParameter(name="created_after", type=str, location=OpenApiParameter.QUERY, description="ISO 8601 datetime."),
            OpenApiParameter(name="created_before", type=str, location=OpenApiParameter.QUERY, description="ISO 8601 datetime."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Token, description or location text."),
            OpenApiParameter(name="limit", type=int, location=OpenApiParameter.QUERY, description="Page size (default 50, max 200)."),
            OpenApiParameter(name="offset", type=int, location=OpenApiParameter.QUERY, description="Rows to skip."),
        ],
        responses={
            200: inline_serializer(
                name="ComplaintPage",
                fields={
                    "complaints": ComplaintSerializer(many=True),
                    "count": serializers.IntegerField(),
                    "limit": serializers.IntegerField(),
                    "offset": serializers.IntegerField(),
                },
            ),
        },
        tags=["Complaints"],
    )
    def list(self, request: Request) -> Response:
        filter_serializer = ComplaintFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        filters = dict(filter_serializer.validated_data)

        page, total = ComplaintQueryService.list_complaints(**filters)
        conf = settings.COMPLAINTS
        return Response(
            {
                "complaints": ComplaintSerializer(page, many=True).data,
                "count": total,
                "limit": min(
                    filters.get("limit") or conf["DEFAULT_PAGE_SIZE"], conf["MAX_PAGE_SIZE"],
                ),
                "offset": filters.get("offset", 0),
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        summary="Submit a complaint",
        description="Citizen submission; no authentication required.",
        request=ComplaintCreateSerializer,
        responses={
            201: OpenApiResponse(response=ComplaintSerializer, description="Complaint created."),
            400: OpenApiResponse(description="Missing category or description, or malformed input."),
        },
        tags=["Complaints"],
    )
    def create(self, request: Request) -> Response:
        serializer = ComplaintCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = get_lifecycle_service().submit(
            serializer.validated_data,
            actor=request.user,
            request_meta=_request_meta(request),
        )
        return Response(ComplaintSerializer(complaint).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a complaint",
        responses={
            200: ComplaintSerializer,
            404: OpenApiResponse(description="Complaint not found."),
        },
        tags=["Complaints"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        complaint = ComplaintQueryService.get_complaint(pk)
        return Response(ComplaintSerializer(complaint).data)

    @extend_schema(
        summary="Update complaint fields",
        description=(
            "Admin escape hatch: overwrite urgency, status, description, "
            "category, subtype, location_text or group_name. Any status may "
            "be forced; the prior values are audit-logged."
        ),
        request=ComplaintUpdateSerializer,
        responses={
            200: ComplaintSerializer,
            400: OpenApiResponse(description="Unknown field or invalid value."),
            404: OpenApiResponse(description="Complaint not found."),
            409: OpenApiResponse(description="expected_updated_at is stale."),
        },
        tags=["Complaints"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        serializer = ComplaintUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        expected = data.pop("expected_updated_at", None)

        complaint = get_lifecycle_service().update_fields(
            pk,
            data,
            admin=request.user,
            expected_updated_at=expected,
            request_meta=_request_meta(request),
        )
        return Response(ComplaintSerializer(complaint).data)

    # ── Public tracking ──────────────────────────────────────────────

    @action(detail=False, methods=["get"], url_path=r"track/(?P<token>[^/]+)")
    @extend_schema(
        summary="Track a complaint by token",
        responses={
            200: ComplaintTrackingSerializer,
            404: OpenApiResponse(description="Unknown token."),
        },
        tags=["Complaints"],
    )
    def track(self, request: Request, token: str = None) -> Response:
        complaint = ComplaintQueryService.get_by_token(token)
        serializer = ComplaintTrackingSerializer(
            complaint, context={"storage": get_lifecycle_service().storage},
        )
        return Response(serializer.data)

    # ── Bulk ─────────────────────────────────────────────────────────

    @action(detail=False, methods=["post"], url_path="bulk")
    @extend_schema(
        summary="Bulk action",
        description=(
            "Apply delete / set_urgency / group to many complaints. Each id "
            "is processed independently: 200 when all succeed, 207 on "
            "partial failure."
        ),
        request=BulkActionSerializer,
        responses={
            200: BulkOutcomeSerializer,
            207: BulkOutcomeSerializer,
            400: OpenApiResponse(description="Invalid action, ids or payload."),
        },
        tags=["Complaints"],
    )
    def bulk(self, request: Request) -> Response:
        serializer = BulkActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        outcome = get_lifecycle_service().bulk_apply(
            data["action"],
            data["ids"],
            data.get("payload"),
            admin=request.user,
            request_meta=_request_meta(request),
        )
        return Response(
            outcome,
            status=status.HTTP_200_OK if outcome["success"] else status.HTTP_207_MULTI_STATUS,
        )

    # ── Assignment ───────────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="assign")
    @extend_schema(
        summary="Assign to a worker",
        description="Bind the complaint to an active worker; re-assignment appends a new history row.",
        request=AssignSerializer,
        responses={
            200: inline_serializer(
                name="AssignResult",
                fields={
                    "complaint": ComplaintSerializer(),
                    "assignment": ComplaintAssignmentSerializer(),
                },
            ),
            404: OpenApiResponse(description="Complaint or worker not found."),
            409: OpenApiResponse(description="expected_updated_at is stale."),
        },
        tags=["Complaints"],
    )
    def assign(self, request: Request, pk: str = None) -> Response:
        serializer = AssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        complaint, assignment = get_lifecycle_service().assign(
            pk,
            data["worker_id"],
            assigned_by=request.user,
            note=data.get("note", ""),
            expected_updated_at=data.get("expected_updated_at"),
            request_meta=_request_meta(request),
        )
        return Response(
            {
                "complaint": ComplaintSerializer(complaint).data,
                "assignment": ComplaintAssignmentSerializer(assignment).data,
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["get"], url_path="assignments")
    @extend_schema(
        summary="Assignment history",
        responses={200: ComplaintAssignmentSerializer(many=True)},
        tags=["Complaints"],
    )
    def assignments(self, request: Request, pk: str = None) -> Response:
        rows = ComplaintQueryService.list_assignments(pk)
        return Response(ComplaintAssignmentSerializer(rows, many=True).data)

    @action(detail=True, methods=["get"], url_path="audit-log")
    @extend_schema(
        summary="Audit trail",
        responses={200: AuditLogSerializer(many=True)},
        tags=["Complaints"],
    )
    def audit_log(self, request: Request, pk: str = None) -> Response:
        entries = ComplaintQueryService.list_audit_log(pk)
        return Response(AuditLogSerializer(entries, many=True).data)

    # ── Worker reports ───────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="report")
    @extend_schema(
        summary="Submit a worker report",
        description="Only the complaint's current assignee may report.",
        request=ReportCreateSerializer,
        responses={
            201: inline_serializer(
                name="ReportResult",
                fields={
                    "complaint": ComplaintSerializer(),
                    "report": WorkerReportSerializer(),
                },
            ),
            400: OpenApiResponse(description="Neither comments nor photos supplied."),
            403: OpenApiResponse(description="Complaint is not assigned to the caller."),
            404: OpenApiResponse(description="Complaint not found."),
        },
        tags=["Worker"],
    )
    def report(self, request: Request, pk: str = None) -> Response:
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        worker = WorkerRosterService.get_worker_for_user(request.user)

        complaint, report = get_lifecycle_service().submit_report(
            pk,
            worker=worker,
            comments=serializer.validated_data.get("comments", ""),
            photos=serializer.validated_data.get("photos"),
            request_meta=_request_meta(request),
        )
        return Response(
            {
                "complaint": ComplaintSerializer(complaint).data,
                "report": WorkerReportSerializer(report).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path="reports")
    @extend_schema(
        summary="Worker reports",
        description="Reports filtered by status; defaults to those awaiting review.",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY,
                             description="submitted (default), reviewed, rejected or all."),
        ],
        responses={200: WorkerReportSerializer(many=True)},
        tags=["Complaints"],
    )
    def reports(self, request: Request) -> Response:
        filter_serializer = ReportFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        rows = ComplaintQueryService.list_reports(filter_serializer.validated_data["status"])
        return Response(WorkerReportSerializer(rows, many=True).data)

    @action(detail=False, methods=["get"], url_path="assigned")
    @extend_schema(
        summary="Complaints assigned to me",
        responses={200: AssignedComplaintSerializer(many=True)},
        tags=["Worker"],
    )
    def assigned(self, request: Request) -> Response:
        worker = WorkerRosterService.get_worker_for_user(request.user)
        rows = ComplaintQueryService.list_assigned_to(worker)
        return Response(AssignedComplaintSerializer(rows, many=True).data)

    # ── Verification ─────────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="verify")
    @extend_schema(
        summary="Verify or reject a resolution",
        description=(
            "action=verify resolves the complaint; action=reject sends it "
            "back to in_progress. report_id, when given, must belong to "
            "this complaint."
        ),
        request=VerifySerializer,
        responses={
            200: inline_serializer(
                name="VerifyResult",
                fields={
                    "complaint": ComplaintSerializer(),
                    "report": WorkerReportSerializer(allow_null=True),
                },
            ),
            404: OpenApiResponse(description="Complaint or report not found."),
            409: OpenApiResponse(description="No worker report to review."),
        },
        tags=["Complaints"],
    )
    def verify(self, request: Request, pk: str = None) -> Response:
        serializer = VerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        service = get_lifecycle_service()
        review = service.verify if data["action"] == "verify" else service.reject

        complaint, report = review(
            pk,
            admin=request.user,
            report_id=data.get("report_id"),
            note=data.get("note", ""),
            request_meta=_request_meta(request),
        )
        return Response(
            {
                "complaint": ComplaintSerializer(complaint).data,
                "report": WorkerReportSerializer(report).data if report else None,
            },
            status=status.HTTP_200_OK,
        )

    # ── Portal hand-off ──────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="submit-to-portal")
    @extend_schema(
        summary="Queue for the municipal portal",
        description="Stub hand-off: records a synthetic job id; nothing is enqueued.",
        request=None,
        responses={
            200: inline_serializer(
                name="PortalResult",
                fields={
                    "job_id": serializers.CharField(),
                    "complaint": ComplaintSerializer(),
                },
            ),
            404: OpenApiResponse(description="Complaint not found."),
        },
        tags=["Complaints"],
    )
    def submit_to_portal(self, request: Request, pk: str = None) -> Response:
        complaint = get_lifecycle_service().queue_for_portal(
            pk, admin=request.user, request_meta=_request_meta(request),
        )
        return Response(
            {
                "job_id": complaint.submitted_to_portal["job_id"],
                "complaint": ComplaintSerializer(complaint).data,
            },
            status=status.HTTP_200_OK,
        )
