"""Admin credential verification against the ``admin_users`` table."""

import hashlib
import hmac
import logging
import re
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import AdminUser

logger = logging.getLogger(__name__)

_SHA256_HEX = re.compile(r"^[a-f0-9]{64}$", re.IGNORECASE)
_MD5_HEX = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
# bcrypt only reads this many bytes of a password.
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with bcrypt for storage.

    Raises:
        ValueError: If the password is longer than bcrypt can hash.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(
            f"Password is longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes"
        )
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def _timing_safe_equal(stored: str, candidate: str) -> bool:
    return hmac.compare_digest(stored.encode("utf-8"), candidate.encode("utf-8"))


def _check_bcrypt(password: str, stored: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
    except ValueError:
        return False


def password_matches(password: str, stored: Optional[str]) -> bool:
    """Check a plain password against a stored credential.

    The stored value may be bcrypt, a SHA-256 or MD5 hex digest, or the
    plain password itself. Hex digests are compared case-insensitively.
    """
    if not stored:
        return False
    if stored.startswith(_BCRYPT_PREFIXES):
        return _check_bcrypt(password, stored)

    candidates = [(stored, password)]
    if _SHA256_HEX.match(stored):
        candidates.append(
            (stored.lower(), hashlib.sha256(password.encode("utf-8")).hexdigest())
        )
    if _MD5_HEX.match(stored):
        candidates.append(
            (stored.lower(), hashlib.md5(password.encode("utf-8")).hexdigest())
        )

    # Compare every candidate so timing does not reveal which format matched.
    results = [_timing_safe_equal(expected, candidate) for expected, candidate in candidates]
    return any(results)


def verify_admin_credentials(
    db: Session, username: str, password: str
) -> Optional[AdminUser]:
    """Return the admin user when the credentials match, else None."""
    user = db.execute(
        select(AdminUser).where(AdminUser.username == username).limit(1)
    ).scalar_one_or_none()
    if user is None:
        logger.info("Login rejected: unknown user %r", username)
        return None

    if not password_matches(password, user.password):
        logger.info("Login rejected: bad password for %r", username)
        return None

    return user
