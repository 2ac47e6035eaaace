"""Password hashing, security stamps and signed session tokens."""

import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import bcrypt
import jwt

from app.core.config import IdentityOptions, PasswordOptions

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors.
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def new_security_stamp() -> str:
    """Return a fresh opaque stamp; changing it revokes every issued session."""
    return secrets.token_hex(16).upper()


def password_policy_errors(password: str, policy: PasswordOptions) -> list[str]:
    """Return human-readable violations of the password policy (empty if none)."""
    errors: list[str] = []
    if len(password) < policy.required_length:
        errors.append(f"Passwords must be at least {policy.required_length} characters.")
    if policy.require_digit and not any(c.isdigit() for c in password):
        errors.append("Passwords must have at least one digit ('0'-'9').")
    if policy.require_lowercase and not any(c.islower() for c in password):
        errors.append("Passwords must have at least one lowercase ('a'-'z').")
    if policy.require_uppercase and not any(c.isupper() for c in password):
        errors.append("Passwords must have at least one uppercase ('A'-'Z').")
    if policy.require_non_alphanumeric and all(c.isalnum() for c in password):
        errors.append("Passwords must have at least one non alphanumeric character.")
    if len(set(password)) < policy.required_unique_chars:
        errors.append(
            f"Passwords must use at least {policy.required_unique_chars} different characters."
        )
    return errors


def encode_session_token(
    claims: dict[str, Any],
    issued_at: datetime,
    expires_at: datetime,
    options: IdentityOptions,
) -> str:
    """Sign the claims together with iat/exp into a compact token."""
    payload: dict[str, Any] = {**claims, "iat": issued_at, "exp": expires_at}
    return jwt.encode(payload, options.secret_key, algorithm=options.algorithm)


def decode_session_token(token: str, options: IdentityOptions, now: datetime) -> dict[str, Any]:
    """
    Verify the signature and return the payload.

    Expiry is checked against ``now`` rather than the wall clock so callers can
    inject a clock. Raises jwt.PyJWTError on a bad signature, a malformed token
    or an expired session.
    """
    payload = jwt.decode(
        token,
        options.secret_key,
        algorithms=[options.algorithm],
        options={"verify_exp": False, "verify_iat": False, "require": ["exp", "iat"]},
    )
    exp = payload["exp"]
    if not isinstance(exp, (int, float)) or now.timestamp() >= exp:
        raise jwt.ExpiredSignatureError("Session has expired")
    return payload
