"""Password hashing primitives backed by bcrypt.

The rest of the core only ever calls `hash_password` and `verify_password`.
"""

import bcrypt

from yaas.core.exceptions import ValidationError

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def validate_password(password: str) -> None:
    """Reject passwords bcrypt cannot hash faithfully.

    Raises:
        ValidationError: If the password is too short or too long.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    """Validate and hash a password.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash string
    """
    validate_password(password)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a password against a stored hash. Never raises on bad input."""
    if not plain_password or not hashed_password:
        return False
    encoded = plain_password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
