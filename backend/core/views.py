"""
Core app views: **Thin Views**.

Each view delegates to ``core.services``.  Views are responsible only
for:

1. Validating the request body or query parameters.
2. Calling the service with the injected storage client.
3. Serialising the result and returning an HTTP ``Response``.
"""

from __future__ import annotations

from django.apps import apps
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    inline_serializer,
)
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    SignedUrlSerializer,
    SystemConstantsSerializer,
    UploadRequestSerializer,
    UploadTargetSerializer,
)
from .services import AttachmentService, SystemConstantsService


def _storage():
    return apps.get_app_config("core").storage


class AttachmentUploadView(APIView):
    """
    **POST /api/core/attachments/**

    Issue signed upload targets.  Citizens upload photos before the
    complaint exists, so no authentication is required.

    A single ``{filename, content_type}`` body returns one
    ``{upload_url, key}``; a ``{files: [...]}`` body returns
    ``{targets: [...]}`` in the same order.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Create upload target(s)",
        request=UploadRequestSerializer,
        responses={
            201: OpenApiResponse(
                response=UploadTargetSerializer,
                description="Single target, or {targets: [...]} for a batch.",
            ),
            400: OpenApiResponse(description="filename is required."),
        },
        tags=["Attachments"],
    )
    def post(self, request: Request) -> Response:
        serializer = UploadRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if "files" in data:
            targets = AttachmentService.create_upload_targets(_storage(), data["files"])
            payload = {"targets": UploadTargetSerializer(targets, many=True).data}
        else:
            target, = AttachmentService.create_upload_targets(
                _storage(),
                [{"filename": data["filename"], "content_type": data.get("content_type", "")}],
            )
            payload = UploadTargetSerializer(target).data
        return Response(payload, status=status.HTTP_201_CREATED)


class AttachmentPublicUrlView(APIView):
    """
    **GET /api/core/attachments/public/?key=...**

    Resolve a stored key to a time-limited read URL.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Signed read URL",
        parameters=[
            OpenApiParameter(name="key", type=str, location=OpenApiParameter.QUERY, required=True,
                             description="Storage key returned at upload time."),
        ],
        responses={
            200: SignedUrlSerializer,
            400: OpenApiResponse(description="Missing key parameter."),
        },
        tags=["Attachments"],
    )
    def get(self, request: Request) -> Response:
        url = AttachmentService.get_read_url(_storage(), request.query_params.get("key", ""))
        return Response(SignedUrlSerializer({"url": url}).data, status=status.HTTP_200_OK)


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Return all complaint choice enumerations so the frontend can build
    dropdowns, filters, and labels without hardcoding values.

    **Authentication**: Not required (``AllowAny``).
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="System constants",
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        serializer = SystemConstantsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)
