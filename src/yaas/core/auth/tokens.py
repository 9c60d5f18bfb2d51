"""Secure random values for authorization codes and client secrets."""

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta

CODE_BYTES = 32  # 256 bits of entropy
CLIENT_SECRET_BYTES = 32

# Fixed lifetime of an authorization code. Deliberately not configurable.
CODE_TTL = timedelta(minutes=10)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def generate_code() -> str:
    """Generate an opaque, URL-safe authorization code."""
    return secrets.token_urlsafe(CODE_BYTES)


def generate_client_secret() -> str:
    """Generate a client secret. Shown to the app owner exactly once."""
    return secrets.token_urlsafe(CLIENT_SECRET_BYTES)


def hash_secret(secret: str) -> str:
    """Hash a client secret for storage.

    The secret has enough entropy that a fast SHA-256 is sufficient.

    Returns:
        Hex-encoded SHA-256 digest.
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def secret_matches(supplied: str, stored_hash: str) -> bool:
    """Compare a supplied secret to a stored hash in constant time."""
    return hmac.compare_digest(hash_secret(supplied), stored_hash)


def code_expiry(issued_at: datetime) -> datetime:
    """Expiry timestamp for a code issued at `issued_at`."""
    return issued_at + CODE_TTL


def is_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    """Check if `now` is strictly past `expires_at`.

    Timezone-naive timestamps are treated as UTC.
    """
    now = now or utcnow()
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return now > expires_at
