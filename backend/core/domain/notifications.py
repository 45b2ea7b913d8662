"""
core.domain.notifications — Best-effort email notification dispatch.

Centralises notification delivery so every lifecycle operation uses one
consistent entry-point rather than building emails inline.

Design decisions
----------------
* **Never raises**: ``notify`` captures every rendering or transport
  error and returns ``{"success": False, "error": ...}``.  The lifecycle
  core logs the outcome and moves on; a failed email never undoes the
  mutation that triggered it.
* **After commit, off the request thread**: ``dispatch`` registers the
  send with ``transaction.on_commit`` so nothing is mailed for a rolled
  back change, then hands it to a bounded thread pool when async
  delivery is enabled (inline otherwise, e.g. in tests).
* **Citizen or admins, never both**: a complaint with a citizen email
  notifies the citizen (CC the reply-to mailbox); otherwise the admin
  distribution list gets an ``[ADMIN]``-prefixed copy.  Worker-facing
  events pass explicit ``recipients`` instead.
* **Injected transport**: ``DjangoMailTransport`` goes through
  ``django.core.mail``; ``DryRunTransport`` only logs.

Usage::

    dispatcher = NotificationDispatcher.from_settings()
    dispatcher.dispatch("complaint_created", complaint)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import TYPE_CHECKING, Any, Iterable, TypedDict

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.db import transaction
from django.template.loader import render_to_string
from django.utils import timezone

if TYPE_CHECKING:
    from core.domain.storage import BlobStorage

logger = logging.getLogger(__name__)

# ── Event-type → (subject template, body template stem) ────────────
# Bodies live in ``core/templates/email/<stem>.txt`` and ``.html``.
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    "complaint_created":             ("Complaint Submitted - {token}",          "complaint_created"),
    "complaint_status_changed":      ("Complaint Status Updated - {token}",     "complaint_status_changed"),
    "complaint_submitted_to_portal": ("Complaint Submitted to PMC Portal - {token}", "complaint_submitted_to_portal"),
    "complaint_verified":            ("Complaint Resolved - {token}",           "complaint_verified"),
    "complaint_rejected":            ("Resolution Report Rejected - {token}",   "complaint_rejected"),
    "complaint_assigned":            ("New Complaint Assigned - {token}",       "complaint_assigned"),
}

_STATUS_DISPLAY: dict[str, str] = {
    "submitted": "Submitted",
    "assigned": "Assigned",
    "in_progress": "In Progress",
    "admin_verification_pending": "Pending Verification",
    "resolved": "Resolved",
    "rejected": "Rejected",
    "queued_for_portal": "Queued for Portal",
}

_URGENCY_DISPLAY: dict[str, str] = {
    "high": "High Priority",
    "medium": "Medium Priority",
    "low": "Low Priority",
}


class NotificationResult(TypedDict):
    success: bool
    error: str | None
    dry_run: bool
    recipients: list[str]


# ═══════════════════════════════════════════════════════════════════
#  Transports
# ═══════════════════════════════════════════════════════════════════


class EmailTransport:
    """Delivers one rendered message.  Raises on failure."""

    dry_run = False

    def send(
        self,
        *,
        to: list[str],
        cc: list[str],
        subject: str,
        text: str,
        html: str,
    ) -> None:
        raise NotImplementedError


class DjangoMailTransport(EmailTransport):
    """Sends through the configured ``EMAIL_BACKEND``."""

    def __init__(self, *, from_email: str | None = None, reply_to: str | None = None) -> None:
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.reply_to = [reply_to] if reply_to else []

    def send(self, *, to, cc, subject, text, html) -> None:
        message = EmailMultiAlternatives(
            subject=subject,
            body=text,
            from_email=self.from_email,
            to=to,
            cc=cc,
            reply_to=self.reply_to,
            connection=get_connection(fail_silently=False),
        )
        message.attach_alternative(html, "text/html")
        message.send()


class DryRunTransport(EmailTransport):
    """Logs the message instead of delivering it."""

    dry_run = True

    def send(self, *, to, cc, subject, text, html) -> None:
        logger.info(
            "[EMAIL DRY RUN] to=%s cc=%s subject=%r\n%s",
            ", ".join(to), ", ".join(cc) or "-", subject, text,
        )


# ═══════════════════════════════════════════════════════════════════
#  Dispatcher
# ═══════════════════════════════════════════════════════════════════


class NotificationDispatcher:
    """
    Renders and sends complaint lifecycle emails.

    One instance is built when the ``complaints`` app starts and is
    shared by the lifecycle services; tests build their own around a
    recording transport.
    """

    def __init__(
        self,
        *,
        transport: EmailTransport,
        admin_recipients: Iterable[str] = (),
        reply_to: str = "",
        app_url: str = "",
        storage: BlobStorage | None = None,
        async_delivery: bool = False,
        max_workers: int = 4,
        max_pending: int = 100,
    ) -> None:
        self.transport = transport
        self.admin_recipients = [addr for addr in admin_recipients if addr]
        self.reply_to = reply_to
        self.app_url = app_url.rstrip("/")
        self.storage = storage
        self._executor: ThreadPoolExecutor | None = None
        self._pending: threading.BoundedSemaphore | None = None
        if async_delivery:
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix="notify",
            )
            self._pending = threading.BoundedSemaphore(max_pending)

    @classmethod
    def from_settings(cls, *, storage: BlobStorage | None = None) -> NotificationDispatcher:
        conf = settings.NOTIFICATIONS
        transport: EmailTransport
        if conf["DRY_RUN"]:
            transport = DryRunTransport()
        else:
            transport = DjangoMailTransport(reply_to=conf["REPLY_TO"])
        return cls(
            transport=transport,
            admin_recipients=conf["ADMIN_RECIPIENTS"],
            reply_to=conf["REPLY_TO"],
            app_url=conf["APP_URL"],
            storage=storage,
            async_delivery=conf["ASYNC"],
            max_workers=conf["MAX_WORKERS"],
        )

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    # ── Public API ──────────────────────────────────────────────────

    def dispatch(
        self,
        event_type: str,
        complaint: Any,
        *,
        extra: dict[str, Any] | None = None,
        recipients: Iterable[str] | None = None,
    ) -> None:
        """
        Fire-and-forget variant of ``notify``.

        The complaint is snapshotted now (inside the caller's
        transaction); the send happens after commit.
        """
        try:
            context = self.build_context(complaint, extra)
        except Exception:
            logger.exception(
                "Could not build notification context for [%s] complaint=%s",
                event_type, getattr(complaint, "pk", None),
            )
            return
        recipient_list = list(recipients) if recipients is not None else None
        transaction.on_commit(
            partial(self._submit, event_type, context, recipient_list)
        )

    def notify(
        self,
        event_type: str,
        complaint: Any,
        *,
        extra: dict[str, Any] | None = None,
        recipients: Iterable[str] | None = None,
    ) -> NotificationResult:
        """
        Render and send synchronously.  Never raises.
        """
        try:
            context = self.build_context(complaint, extra)
        except Exception as exc:
            logger.exception("Could not build notification context for [%s]", event_type)
            return self._result(False, str(exc), [])
        recipient_list = list(recipients) if recipients is not None else None
        return self._deliver(event_type, context, recipient_list)

    def build_context(self, complaint: Any, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        """Plain-data snapshot of the complaint used by every template."""
        extra = dict(extra or {})
        created_at = complaint.created_at or timezone.now()
        photo_keys = extra.pop("photo_keys", None) or []
        context = {
            "complaint_id": complaint.pk,
            "token": complaint.token,
            "category": complaint.get_category_display(),
            "subtype": complaint.subtype,
            "description": complaint.description,
            "status": complaint.status,
            "status_display": _STATUS_DISPLAY.get(complaint.status, complaint.status),
            "urgency_display": _URGENCY_DISPLAY.get(complaint.urgency, _URGENCY_DISPLAY["medium"]),
            "location_text": complaint.location_text,
            "created_at": timezone.localtime(created_at).strftime("%d %B %Y, %I:%M %p"),
            "email": complaint.email or "",
            "tracking_url": f"{self.app_url}/track/{complaint.token}",
            "photo_urls": self._photo_urls(photo_keys),
        }
        if "old_status" in extra:
            extra["old_status_display"] = _STATUS_DISPLAY.get(extra["old_status"], extra["old_status"])
        if "new_status" in extra:
            extra["new_status_display"] = _STATUS_DISPLAY.get(extra["new_status"], extra["new_status"])
        context.update(extra)
        return context

    # ── Internals ───────────────────────────────────────────────────

    def _photo_urls(self, keys: list[str]) -> list[str]:
        if not keys or self.storage is None:
            return []
        urls = []
        for key in keys:
            try:
                urls.append(self.storage.signed_url(key))
            except Exception:
                logger.warning("Could not sign photo key %s for email", key)
        return urls

    def _submit(self, event_type: str, context: dict[str, Any], recipients: list[str] | None) -> None:
        if self._executor is None:
            self._deliver(event_type, context, recipients)
            return
        if not self._pending.acquire(blocking=False):
            logger.error(
                "Notification queue full; dropped [%s] for %s",
                event_type, context.get("token"),
            )
            return
        try:
            future = self._executor.submit(self._deliver, event_type, context, recipients)
        except RuntimeError:
            self._pending.release()
            logger.error("Notification executor is shut down; dropped [%s]", event_type)
            return
        future.add_done_callback(lambda _f: self._pending.release())

    def _recipients_for(
        self, context: dict[str, Any], recipients: list[str] | None, subject: str,
    ) -> tuple[list[str], list[str], str]:
        if recipients is not None:
            return [r for r in recipients if r], [], subject
        if context.get("email"):
            cc = [self.reply_to] if self.reply_to else []
            return [context["email"]], cc, subject
        return list(self.admin_recipients), [], f"[ADMIN] {subject}"

    def _deliver(
        self, event_type: str, context: dict[str, Any], recipients: list[str] | None,
    ) -> NotificationResult:
        to: list[str] = []
        try:
            try:
                subject_template, stem = _EVENT_TEMPLATES[event_type]
            except KeyError:
                raise ValueError(f"Unknown notification type: {event_type}")

            subject = subject_template.format(token=context["token"])
            to, cc, subject = self._recipients_for(context, recipients, subject)
            if not to:
                logger.warning(
                    "No recipients for notification [%s] complaint=%s",
                    event_type, context.get("token"),
                )
                return self._result(True, None, [])

            text = render_to_string(f"email/{stem}.txt", context).strip()
            html = render_to_string(f"email/{stem}.html", context).strip()
            self.transport.send(to=to, cc=cc, subject=subject, text=text, html=html)
        except Exception as exc:
            logger.error(
                "Notification [%s] for complaint %s failed: %s",
                event_type, context.get("token"), exc,
            )
            return self._result(False, str(exc), to)

        logger.info(
            "Notification [%s] for complaint %s sent to %s%s",
            event_type, context.get("token"), ", ".join(to),
            " (dry run)" if self.transport.dry_run else "",
        )
        return self._result(True, None, to)

    def _result(self, success: bool, error: str | None, recipients: list[str]) -> NotificationResult:
        return {
            "success": success,
            "error": error,
            "dry_run": self.transport.dry_run,
            "recipients": recipients,
        }
