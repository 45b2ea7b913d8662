"""
core.domain.transactions — Helpers for safe state transitions.

Wraps ``transaction.atomic`` and ``select_for_update`` into reusable
patterns so every lifecycle operation follows the same concurrency-safe
approach:

* Re-read the row under a lock before validating its current state.
* Optionally reject the write when the caller's last-seen
  ``updated_at`` no longer matches (optimistic concurrency token).
* Run independent units of work (one per bulk id) in their own
  transaction so one failure cannot poison the others.
* Turn data-store failures (``DatabaseError``) into ``TransientError``
  once the transaction has rolled back.

Usage::

    from core.domain.transactions import lock_for_update, ensure_not_stale

    with transaction.atomic():
        complaint = lock_for_update(Complaint, complaint_id)
        ensure_not_stale(complaint, expected_updated_at)
        ...

    from core.domain.transactions import atomic_transition, run_in_atomic

    result = run_in_atomic(my_service_function, arg1, arg2, kwarg=val)

    @atomic_transition
    def assign(self, ...):
        ...
"""

from __future__ import annotations

import datetime
import functools
import logging
from typing import Any, Callable, TypeVar

from django.db import DatabaseError, models, transaction

from core.domain.exceptions import Conflict, NotFound, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=models.Model)


def run_in_atomic(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Execute ``fn(*args, **kwargs)`` inside ``transaction.atomic()``.

    Convenient when a service function should be fully atomic but you
    don't want to decorate the function itself (e.g. because the caller
    decides the transaction boundary, as bulk processing does per id).

    Raises:
        TransientError: If the data store failed (``DatabaseError``).
        Any other exception raised by ``fn``; the transaction is rolled back.
    """
    try:
        with transaction.atomic():
            return fn(*args, **kwargs)
    except DatabaseError as exc:
        logger.error(
            "Data store failure in %s: %s",
            getattr(fn, "__qualname__", repr(fn)), exc,
        )
        raise TransientError(
            "The data store is temporarily unavailable; nothing was changed."
        ) from exc


def atomic_transition(fn: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator form of ``run_in_atomic`` for lifecycle service methods.
    """

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        return run_in_atomic(fn, *args, **kwargs)

    return wrapper


def lock_for_update(model_class: type[M], pk: Any, *, label: str | None = None) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.
        label:       Human name for error messages (defaults to the
                     model class name).

    Raises:
        NotFound: If no row with that PK exists (or the PK is malformed).
    """
    name = label or model_class.__name__
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except (model_class.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"{name} with id {pk} not found.")


def ensure_not_stale(
    instance: models.Model,
    expected_updated_at: datetime.datetime | None,
    *,
    field: str = "updated_at",
) -> None:
    """
    Compare-and-swap guard on the row's modification timestamp.

    ``None`` means the caller opted out of the check.

    Raises:
        Conflict: If the stored timestamp differs from the expected one.
    """
    if expected_updated_at is None:
        return
    current = getattr(instance, field)
    if current != expected_updated_at:
        raise Conflict(
            f"{type(instance).__name__} {instance.pk} was modified at "
            f"{current.isoformat()}; refresh and retry."
        )
