"""Build, sign and verify the session principal stored in the session cookie."""

import logging
from datetime import datetime, timedelta
from typing import Any

import jwt
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import IdentityOptions
from app.core.security import decode_session_token, encode_session_token
from app.models import User
from app.schemas.auth import SessionPrincipal
from app.services import identity

logger = logging.getLogger(__name__)


class InvalidSession(Exception):
    """The session token is missing a claim, tampered with, or expired."""


def build_principal(user: User, now: datetime, options: IdentityOptions) -> SessionPrincipal:
    """Snapshot the user's identity claims and current roles, valid for expire_days."""
    return SessionPrincipal(
        user_id=str(user.id),
        user_name=user.user_name,
        given_name=user.first_name,
        surname=user.last_name,
        security_stamp=user.security_stamp,
        roles=identity.get_roles(user),
        issued_at=now,
        expires_at=now + timedelta(days=options.cookie.expire_days),
    )


def serialize_principal(principal: SessionPrincipal, options: IdentityOptions) -> str:
    c = options.claims
    claims: dict[str, Any] = {
        c.user_id: principal.user_id,
        c.user_name: principal.user_name,
        c.given_name: principal.given_name,
        c.surname: principal.surname,
        c.security_stamp: principal.security_stamp,
        c.role: list(principal.roles),
    }
    return encode_session_token(claims, principal.issued_at, principal.expires_at, options)


def deserialize_principal(token: str, options: IdentityOptions, now: datetime) -> SessionPrincipal:
    """Verify signature and expiry, then map claims back. Raises InvalidSession."""
    try:
        payload = decode_session_token(token, options, now)
    except jwt.PyJWTError as e:
        raise InvalidSession(str(e)) from e
    c = options.claims
    try:
        return SessionPrincipal(
            user_id=payload[c.user_id],
            user_name=payload[c.user_name],
            given_name=payload[c.given_name],
            surname=payload[c.surname],
            security_stamp=payload[c.security_stamp],
            roles=payload.get(c.role) or [],
            issued_at=payload["iat"],
            expires_at=payload["exp"],
        )
    except (KeyError, ValidationError) as e:
        raise InvalidSession(f"Malformed session payload: {e}") from e


def validate_security_stamp(db: Session, principal: SessionPrincipal) -> User | None:
    """Return the user if it still exists and its stamp matches the principal's, else None."""
    user = identity.find_by_id(db, principal.user_id)
    if user is None:
        logger.info("Session rejected: user id=%s no longer exists", principal.user_id)
        return None
    if user.security_stamp != principal.security_stamp:
        logger.info("Session rejected: security stamp changed for user id=%s", user.id)
        return None
    return user
