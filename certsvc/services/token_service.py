"""Validation token derivation (HMAC-SHA256).

A certificate's validation token binds (course_id, participant_id,
issued_at) to the service's signing secret:

    token = HMAC-SHA256(secret, canonical_message).hexdigest()

The canonical message is a compact JSON array with a version tag, so
field boundaries are unambiguous: ("a|b", "c") and ("a", "b|c") cannot
encode to the same bytes the way a plain "|".join() would.  issued_at is
normalised to UTC with microsecond precision before encoding; the same
instant always yields the same token regardless of the offset it was
expressed in.

Anyone holding the printed token can have it checked by recomputing it,
but cannot mint a token for different data without the secret.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import UTC, datetime
from uuid import UUID

from certsvc.core.config import ConfigurationError

_MESSAGE_VERSION = "certsvc.v1"
TOKEN_LENGTH = 64  # hex chars of a SHA-256 digest


def _canonical_timestamp(issued_at: datetime) -> str:
    if not isinstance(issued_at, datetime):
        raise ValueError("issued_at must be a datetime")
    if issued_at.tzinfo is None:
        raise ValueError("issued_at must be timezone-aware")
    return issued_at.astimezone(UTC).isoformat(timespec="microseconds")


def _canonical_id(name: str, value: UUID | str) -> str:
    text = str(value).strip()
    if not text:
        raise ValueError(f"{name} must be non-empty")
    return text


class TokenDeriver:
    """Derives and checks validation tokens with a fixed signing secret.

    Built once at startup from Settings and handed to the services that
    need it.  The secret is never exposed through attributes or repr.
    """

    __slots__ = ("_key",)

    def __init__(self, secret: str) -> None:
        if not secret or not secret.strip():
            raise ConfigurationError("certificate signing secret is empty")
        self._key = secret.encode("utf-8")

    def __repr__(self) -> str:
        return "TokenDeriver(secret=<redacted>)"

    def derive(
        self,
        course_id: UUID | str,
        participant_id: UUID | str,
        issued_at: datetime,
    ) -> str:
        message = json.dumps(
            [
                _MESSAGE_VERSION,
                _canonical_id("course_id", course_id),
                _canonical_id("participant_id", participant_id),
                _canonical_timestamp(issued_at),
            ],
            separators=(",", ":"),
        )
        return hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def matches(
        self,
        supplied: str,
        course_id: UUID | str,
        participant_id: UUID | str,
        issued_at: datetime,
    ) -> bool:
        """Constant-time check of a supplied token against the expected one."""
        expected = self.derive(course_id, participant_id, issued_at)
        # Bytes, not str: compare_digest rejects non-ASCII str input
        return hmac.compare_digest(
            supplied.encode("utf-8"), expected.encode("ascii")
        )


def derive_token(
    course_id: UUID | str,
    participant_id: UUID | str,
    issued_at: datetime,
    secret: str,
) -> str:
    return TokenDeriver(secret).derive(course_id, participant_id, issued_at)
