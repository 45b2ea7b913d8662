"""
core.domain.exception_handler — DRF-compatible global exception handler.

Turns the lifecycle error taxonomy (``core.domain.exceptions``) into
``{"detail": ...}`` responses, so complaint views never carry
per-endpoint try/except blocks.

A raw ``DatabaseError`` that escapes a read path (lifecycle writes
already report it as ``TransientError``) is answered like a
``TransientError``: 503 with a generic message.

Registered in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    Conflict,
    DomainError,
    NotFound,
    PermissionDenied,
    TransientError,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases.
_STATUS_MAP: tuple[tuple[type[DomainError], int], ...] = (
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Conflict, status.HTTP_409_CONFLICT),  # includes InvalidTransition
    (TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DomainError, status.HTTP_400_BAD_REQUEST),
)

DATA_STORE_UNAVAILABLE = "The data store is temporarily unavailable. Please retry."


def _status_for(exc: DomainError) -> int:
    for exc_class, status_code in _STATUS_MAP:
        if isinstance(exc, exc_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF's own handler runs first; domain errors and data-store failures
    are mapped afterwards.  Anything else returns ``None`` (a 500).
    """
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view", "unknown")

    if isinstance(exc, DatabaseError):
        logger.error("Data store failure in %s: %s", view, exc)
        return Response(
            {"detail": DATA_STORE_UNAVAILABLE},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if not isinstance(exc, DomainError):
        return None

    status_code = _status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log("Domain exception [%s] in %s: %s", type(exc).__name__, view, exc)
    return Response({"detail": str(exc)}, status=status_code)
