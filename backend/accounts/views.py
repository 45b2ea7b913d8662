"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.

View Map
--------
- ``LoginView``       POST /auth/login/
- ``MeView``          GET  /me/
- ``WorkerViewSet``   GET  /workers/, /workers/{id}/  (admin only)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import IsAdmin
from .serializers import (
    CustomTokenObtainPairSerializer,
    TokenResponseSerializer,
    UserDetailSerializer,
    WorkerSerializer,
)
from .services import WorkerRosterService


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user by username or email plus
    password and returns a JWT pair with the user's profile.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Log in",
        request=CustomTokenObtainPairSerializer,
        responses={
            200: TokenResponseSerializer,
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET /api/accounts/me/

    Returns the caller's profile including the resolved role, which the
    dashboard uses to pick the admin or worker view.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user profile",
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        return Response(UserDetailSerializer(request.user).data)


# ═══════════════════════════════════════════════════════════════════
#  Worker Roster ViewSet
# ═══════════════════════════════════════════════════════════════════


class WorkerViewSet(viewsets.ViewSet):
    """
    /api/accounts/workers/

    Lists active workers for the assignment dialog.
    """

    permission_classes = [IsAuthenticated, IsAdmin]

    @extend_schema(
        summary="List active workers",
        responses={200: WorkerSerializer(many=True)},
        tags=["Workers"],
    )
    def list(self, request: Request) -> Response:
        workers = WorkerRosterService.list_active_workers()
        return Response(WorkerSerializer(workers, many=True).data)

    @extend_schema(
        summary="Retrieve an active worker",
        responses={
            200: WorkerSerializer,
            404: OpenApiResponse(description="Worker not found or inactive."),
        },
        tags=["Workers"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        worker = WorkerRosterService.get_active_worker(pk)
        return Response(WorkerSerializer(worker).data)
