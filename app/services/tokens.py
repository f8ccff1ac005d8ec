"""Signed session tokens carried in the dashboard auth cookie.

Tokens use the compact ``header.body.signature`` shape: each segment is
base64url (no padding), the header is a single fixed JSON object, and the
signature is an HMAC-SHA256 over ``header + "." + body`` keyed with the
server secret. Tokens are self-contained and never stored server-side, so a
token stays valid until it expires.
"""

import base64
import binascii
import hashlib
import hmac
import json
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

DEFAULT_TOKEN_TTL_MS = 24 * 60 * 60 * 1000

_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode((segment + padding).encode("ascii"))


def _encode_json(value: dict) -> str:
    return _b64url_encode(json.dumps(value, separators=(",", ":")).encode("utf-8"))


HEADER_SEGMENT = _encode_json(_HEADER)


@dataclass(frozen=True)
class TokenClaims:
    """Decoded token payload.

    Attributes:
        subject_id: Admin user id.
        subject_name: Admin username at issue time.
        expires_at: Expiry as milliseconds since the epoch.
    """

    subject_id: int
    subject_name: str
    expires_at: int

    def to_dict(self) -> dict:
        return {
            "subject_id": self.subject_id,
            "subject_name": self.subject_name,
            "expires_at": self.expires_at,
        }


class TokenService:
    """Issues and verifies session tokens.

    The service holds no mutable state, so one instance can be shared by all
    requests.

    Args:
        secret: HMAC key.
        default_ttl_ms: Lifetime applied when ``issue`` gets no ``ttl_ms``.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        secret: str,
        default_ttl_ms: int = DEFAULT_TOKEN_TTL_MS,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret.encode("utf-8")
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sign(self, header: str, body: str) -> str:
        digest = hmac.new(
            self._secret, f"{header}.{body}".encode("ascii"), hashlib.sha256
        ).digest()
        return _b64url_encode(digest)

    def issue(
        self, subject_id: int, subject_name: str, ttl_ms: Optional[int] = None
    ) -> str:
        """Create a signed token for an authenticated admin.

        Args:
            subject_id: Positive admin user id.
            subject_name: Non-empty admin username.
            ttl_ms: Lifetime in milliseconds (default: the service TTL).

        Returns:
            The compact token string.

        Raises:
            ValueError: If the subject or TTL is invalid.
        """
        if isinstance(subject_id, bool) or not isinstance(subject_id, int) or subject_id <= 0:
            raise ValueError(f"Invalid subject_id: {subject_id!r}")
        if not isinstance(subject_name, str) or not subject_name:
            raise ValueError("subject_name must be a non-empty string")
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            raise ValueError(f"Token TTL must be positive, got {ttl}")

        claims = TokenClaims(
            subject_id=subject_id,
            subject_name=subject_name,
            expires_at=self._now_ms() + int(ttl),
        )
        body = _encode_json(claims.to_dict())
        return f"{HEADER_SEGMENT}.{body}.{self._sign(HEADER_SEGMENT, body)}"

    def verify(self, token: Optional[str]) -> Optional[TokenClaims]:
        """Return the claims of a valid token, or None.

        Every failure (missing, malformed, wrong header, bad signature,
        unreadable body, expired) yields None without saying which check
        failed.
        """
        if not token or not isinstance(token, str):
            return None

        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            return None
        header, body, signature = parts
        if header != HEADER_SEGMENT:
            return None

        try:
            expected = self._sign(header, body)
        except UnicodeEncodeError:
            return None
        provided = signature.encode("utf-8", errors="replace")
        if not hmac.compare_digest(expected.encode("ascii"), provided):
            return None

        try:
            payload = json.loads(_b64url_decode(body).decode("utf-8"))
        except (ValueError, binascii.Error, UnicodeError):
            return None
        return self._claims_from_payload(payload)

    def _claims_from_payload(self, payload) -> Optional[TokenClaims]:
        if not isinstance(payload, dict):
            return None

        subject_id = payload.get("subject_id")
        subject_name = payload.get("subject_name")
        expires_at = payload.get("expires_at")

        if isinstance(subject_id, bool) or not isinstance(subject_id, int):
            return None
        if not isinstance(subject_name, str):
            return None
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            return None
        if not math.isfinite(expires_at) or expires_at <= self._now_ms():
            return None

        return TokenClaims(
            subject_id=subject_id,
            subject_name=subject_name,
            expires_at=int(expires_at),
        )
