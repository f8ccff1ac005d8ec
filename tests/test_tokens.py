"""Tests for the signed session token service.

Covers issuing, verification round-trips, expiry, tamper resistance and
malformed input handling.
"""

import base64
import hashlib
import hmac
import json

import pytest

from app.services.tokens import HEADER_SEGMENT, TokenClaims, TokenService

SECRET = "unit-test-secret"


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _forge(body: dict, secret: str = SECRET) -> str:
    """Build a correctly signed token around an arbitrary body."""
    body_segment = _b64(json.dumps(body).encode("utf-8"))
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{HEADER_SEGMENT}.{body_segment}".encode("ascii"),
        hashlib.sha256,
    ).digest()
    return f"{HEADER_SEGMENT}.{body_segment}.{_b64(signature)}"


@pytest.fixture()
def service(clock):
    return TokenService(SECRET, clock=clock)


# ---------------------------------------------------------------------------
# issue
# ---------------------------------------------------------------------------


class TestIssue:
    """Tests for TokenService.issue."""

    def test_token_has_three_segments(self, service):
        assert len(service.issue(1, "admin").split(".")) == 3

    def test_header_is_fixed_hs256_jwt(self, service):
        """Header segment should decode to the fixed HS256/JWT object."""
        header = service.issue(1, "admin").split(".")[0]
        padded = header + "=" * (-len(header) % 4)
        assert json.loads(base64.urlsafe_b64decode(padded)) == {"alg": "HS256", "typ": "JWT"}
        assert header == HEADER_SEGMENT

    def test_body_carries_claims(self, service, clock):
        """Body should hold subject id, name and the absolute expiry."""
        body = service.issue(42, "noc", ttl_ms=1000).split(".")[1]
        padded = body + "=" * (-len(body) % 4)
        assert json.loads(base64.urlsafe_b64decode(padded)) == {
            "subject_id": 42,
            "subject_name": "noc",
            "expires_at": int(clock.now * 1000) + 1000,
        }

    def test_segments_are_unpadded_base64url(self, service):
        token = service.issue(1, "admin/with+chars?")
        assert "=" not in token
        assert "+" not in token and "/" not in token

    def test_default_ttl_is_24_hours(self, service, clock):
        claims = service.verify(service.issue(1, "admin"))
        assert claims.expires_at == int(clock.now * 1000) + 24 * 60 * 60 * 1000

    def test_signature_is_hmac_sha256_of_header_and_body(self, service):
        header, body, signature = service.issue(5, "x").split(".")
        expected = hmac.new(
            SECRET.encode(), f"{header}.{body}".encode(), hashlib.sha256
        ).digest()
        assert signature == _b64(expected)

    @pytest.mark.parametrize("subject_id", [0, -1, True, "1", 1.5])
    def test_invalid_subject_id_raises(self, service, subject_id):
        with pytest.raises(ValueError):
            service.issue(subject_id, "admin")

    def test_empty_subject_name_raises(self, service):
        with pytest.raises(ValueError):
            service.issue(1, "")

    def test_non_positive_ttl_raises(self, service):
        with pytest.raises(ValueError, match="positive"):
            service.issue(1, "admin", ttl_ms=0)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService("")


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------


class TestVerify:
    """Tests for TokenService.verify."""

    def test_round_trip(self, service, clock):
        """verify(issue(...)) should return the issued claims."""
        token = service.issue(7, "operator", ttl_ms=60_000)
        assert service.verify(token) == TokenClaims(
            subject_id=7,
            subject_name="operator",
            expires_at=int(clock.now * 1000) + 60_000,
        )

    def test_unicode_subject_name_round_trip(self, service):
        claims = service.verify(service.issue(3, "opérateur"))
        assert claims.subject_name == "opérateur"

    def test_valid_until_just_before_expiry(self, service, clock):
        token = service.issue(1, "admin", ttl_ms=10_000)
        clock.advance(9.999)
        assert service.verify(token) is not None

    def test_expired_token_is_invalid(self, service, clock):
        """A correctly signed token past its expiry should be rejected."""
        token = service.issue(1, "admin", ttl_ms=10_000)
        clock.advance(10.0)
        assert service.verify(token) is None

    def test_expiry_in_the_past_is_invalid(self, service, clock):
        token = _forge({"subject_id": 1, "subject_name": "a", "expires_at": clock.now * 1000 - 1})
        assert service.verify(token) is None

    def test_other_secret_is_invalid(self, service, clock):
        other = TokenService("another-secret", clock=clock)
        assert service.verify(other.issue(1, "admin")) is None

    def test_every_single_character_body_flip_is_rejected(self, service):
        """Flipping any one body character should break the signature."""
        header, body, signature = service.issue(9, "tamper").split(".")
        for position, char in enumerate(body):
            replacement = "A" if char != "A" else "B"
            forged_body = body[:position] + replacement + body[position + 1:]
            assert service.verify(f"{header}.{forged_body}.{signature}") is None

    def test_tampered_signature_is_rejected(self, service):
        header, body, signature = service.issue(9, "tamper").split(".")
        forged = signature[:-1] + ("A" if signature[-1] != "A" else "B")
        assert service.verify(f"{header}.{body}.{forged}") is None

    def test_different_header_is_rejected(self, service):
        """Only the exact fixed header segment is accepted."""
        _, body, signature = service.issue(1, "admin").split(".")
        none_header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode())
        assert service.verify(f"{none_header}.{body}.{signature}") is None

    @pytest.mark.parametrize(
        "token",
        [None, "", "a.b", "a.b.c.d", "..", "a..c", ".b.c", 12345, b"a.b.c"],
    )
    def test_malformed_input_is_invalid_without_raising(self, service, token):
        assert service.verify(token) is None

    def test_non_ascii_segments_are_invalid(self, service):
        assert service.verify(f"{HEADER_SEGMENT}.bödy.sïg") is None

    def test_body_that_is_not_json_is_invalid(self, service):
        body = _b64(b"not json")
        signature = hmac.new(
            SECRET.encode(), f"{HEADER_SEGMENT}.{body}".encode(), hashlib.sha256
        ).digest()
        assert service.verify(f"{HEADER_SEGMENT}.{body}.{_b64(signature)}") is None

    @pytest.mark.parametrize(
        "body",
        [
            ["not", "an", "object"],
            {"subject_name": "a", "expires_at": 9e15},
            {"subject_id": "1", "subject_name": "a", "expires_at": 9e15},
            {"subject_id": True, "subject_name": "a", "expires_at": 9e15},
            {"subject_id": 1, "subject_name": None, "expires_at": 9e15},
            {"subject_id": 1, "subject_name": "a"},
            {"subject_id": 1, "subject_name": "a", "expires_at": "9e15"},
            {"subject_id": 1, "subject_name": "a", "expires_at": True},
        ],
    )
    def test_signed_but_invalid_claims_are_rejected(self, service, body):
        assert service.verify(_forge(body)) is None

    def test_non_finite_expiry_is_rejected(self, service):
        """JSON Infinity is parseable in Python but must not count as a valid expiry."""
        body_segment = _b64(b'{"subject_id": 1, "subject_name": "a", "expires_at": Infinity}')
        signature = hmac.new(
            SECRET.encode(), f"{HEADER_SEGMENT}.{body_segment}".encode(), hashlib.sha256
        ).digest()
        assert service.verify(f"{HEADER_SEGMENT}.{body_segment}.{_b64(signature)}") is None

    def test_float_expiry_is_accepted(self, service, clock):
        token = _forge(
            {"subject_id": 1, "subject_name": "a", "expires_at": clock.now * 1000 + 5000.5}
        )
        claims = service.verify(token)
        assert claims is not None
        assert claims.expires_at == int(clock.now * 1000 + 5000.5)
