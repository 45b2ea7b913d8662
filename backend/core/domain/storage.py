"""
core.domain.storage — Blob Storage collaborator.

Complaint photos and worker-report evidence are uploaded straight to a
storage bucket.  The complaint core never sees bytes or URLs: it stores
opaque **keys** and asks this collaborator for a time-limited read URL
when one is needed (tracking page, resolution email).

``SignedURLStorage`` issues upload targets and read URLs whose tokens
are signed with Django's ``TimestampSigner``; the storage gateway in
front of the bucket validates them with ``resolve_token``.
"""

from __future__ import annotations

import re
import secrets
import time
from typing import TypedDict

from django.conf import settings
from django.core import signing

from core.domain.exceptions import DomainError

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class UploadTarget(TypedDict):
    upload_url: str
    key: str


class BlobStorage:
    """Interface consumed by the complaint core and the attachment views."""

    def create_upload_target(self, filename: str, content_type: str) -> UploadTarget:
        raise NotImplementedError

    def signed_url(self, key: str) -> str:
        raise NotImplementedError


class SignedURLStorage(BlobStorage):
    """
    Bucket-style storage addressed through signed, expiring URLs.

    Upload and read tokens use different salts so an upload token can
    never be replayed as a read token (and vice versa).
    """

    _UPLOAD_SALT = "storage.upload"
    _READ_SALT = "storage.read"

    def __init__(
        self,
        *,
        bucket: str,
        base_url: str,
        upload_ttl: int = 300,
        read_ttl: int = 3600,
    ) -> None:
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")
        self.upload_ttl = upload_ttl
        self.read_ttl = read_ttl

    @classmethod
    def from_settings(cls) -> SignedURLStorage:
        conf = settings.STORAGE
        return cls(
            bucket=conf["BUCKET"],
            base_url=conf["BASE_URL"],
            upload_ttl=conf["UPLOAD_URL_TTL_SECONDS"],
            read_ttl=conf["SIGNED_URL_TTL_SECONDS"],
        )

    @staticmethod
    def build_key(filename: str) -> str:
        """``uploads/<epoch-ms>-<random>-<sanitised filename>``."""
        safe_name = _UNSAFE_FILENAME_CHARS.sub("_", filename.strip()) or "file"
        return f"uploads/{int(time.time() * 1000)}-{secrets.token_hex(4)}-{safe_name}"

    def create_upload_target(self, filename: str, content_type: str) -> UploadTarget:
        if not filename or not filename.strip():
            raise DomainError("filename is required.")
        key = self.build_key(filename)
        token = signing.TimestampSigner(salt=self._UPLOAD_SALT).sign_object(
            {"bucket": self.bucket, "key": key, "content_type": content_type or "application/octet-stream"}
        )
        return {
            "upload_url": f"{self.base_url}/{self.bucket}/upload?token={token}",
            "key": key,
        }

    def signed_url(self, key: str) -> str:
        if not key:
            raise DomainError("key is required.")
        token = signing.TimestampSigner(salt=self._READ_SALT).sign_object(
            {"bucket": self.bucket, "key": key}
        )
        return f"{self.base_url}/{self.bucket}/object?token={token}"

    def resolve_token(self, token: str, *, upload: bool = False) -> str:
        """
        Return the key a token grants access to.

        Raises ``DomainError`` for tampered, expired, or foreign-bucket
        tokens.
        """
        salt, ttl = (self._UPLOAD_SALT, self.upload_ttl) if upload else (self._READ_SALT, self.read_ttl)
        try:
            data = signing.TimestampSigner(salt=salt).unsign_object(token, max_age=ttl)
        except signing.SignatureExpired:
            raise DomainError("The storage link has expired.")
        except signing.BadSignature:
            raise DomainError("The storage link is invalid.")
        if data.get("bucket") != self.bucket:
            raise DomainError("The storage link is invalid.")
        return data["key"]
