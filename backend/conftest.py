"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` / ``admin_user`` / ``make_worker`` factories.
  - ``auth_header`` fixture for authenticated requests (JWT).
  - ``recording_transport`` and ``lifecycle``: a lifecycle service wired
    to an in-memory mail transport and synchronous delivery.

The autouse ``_test_lifecycle`` fixture installs that service on the
``complaints`` app config, so API tests (including ``TestCase``
classes) go through the recording transport instead of the thread pool
built from settings.
"""

from __future__ import annotations

import pytest
from django.apps import apps
from rest_framework.test import APIClient

from core.domain.notifications import EmailTransport, NotificationDispatcher
from core.domain.storage import SignedURLStorage

ADMIN_RECIPIENTS = ["ops@example.com"]
REPLY_TO = "replies@example.com"
APP_URL = "https://civic.example"


class RecordingTransport(EmailTransport):
    """Keeps every sent message in ``sent``; ``fail=True`` raises instead."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send(self, *, to, cc, subject, text, html) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append({"to": to, "cc": cc, "subject": subject, "text": text, "html": html})

    def subjects(self) -> list[str]:
        return [message["subject"] for message in self.sent]


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def storage() -> SignedURLStorage:
    return SignedURLStorage(bucket="test-bucket", base_url="https://storage.example")


@pytest.fixture()
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def notifier(recording_transport, storage) -> NotificationDispatcher:
    return NotificationDispatcher(
        transport=recording_transport,
        admin_recipients=ADMIN_RECIPIENTS,
        reply_to=REPLY_TO,
        app_url=APP_URL,
        storage=storage,
    )


@pytest.fixture()
def lifecycle(notifier, storage):
    from complaints.services import ComplaintLifecycleService
    from core.domain.audit import AuditLogWriter

    return ComplaintLifecycleService(
        audit=AuditLogWriter(),
        notifier=notifier,
        storage=storage,
    )


@pytest.fixture(autouse=True)
def _test_lifecycle(lifecycle):
    config = apps.get_app_config("complaints")
    original = config.lifecycle
    config.lifecycle = lifecycle
    yield lifecycle
    config.lifecycle = original


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice", role="admin")
    """
    from accounts.models import User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        role: str = "citizen",
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            role=role,
            is_active=is_active,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def admin_user(create_user):
    return create_user(username="triage_admin", email="admin@example.com", role="admin")


@pytest.fixture()
def make_worker(create_user):
    """
    Factory for roster entries backed by a worker-role account.

    The roster email is left blank unless given, so ``contact_email``
    falls back to the account email.
    """
    from accounts.models import Worker

    def _factory(*, name: str = "Field Worker", email: str = "", is_active: bool = True) -> Worker:
        user = create_user(role="worker")
        return Worker.objects.create(
            user=user,
            display_name=name,
            email=email,
            is_active=is_active,
        )

    return _factory


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper that creates a user and returns an
    ``Authorization`` header dict with a valid JWT access token.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(role="admin")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(*, user=None, **user_kwargs) -> dict[str, str]:
        if user is None:
            user = create_user(**user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make
