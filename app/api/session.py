"""Cookie session transport and the auth dependencies (require_principal, require_roles)."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timezone
from typing import Annotated

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from app.core.config import IdentityOptions
from app.core.database import get_db
from app.core.errors import AccessDenied, AuthenticationRequired
from app.core.security import Clock, utcnow
from app.schemas.auth import SessionPrincipal
from app.services.claims import (
    InvalidSession,
    deserialize_principal,
    serialize_principal,
    validate_security_stamp,
)

logger = logging.getLogger(__name__)


def get_identity_options(request: Request) -> IdentityOptions:
    """Dependency: identity options fixed at app startup."""
    return request.app.state.identity


def get_clock() -> Clock:
    """Dependency: source of 'now'. Tests override it to move time."""
    return utcnow


@dataclass
class SessionState:
    principal: SessionPrincipal | None
    # A cookie was sent but failed verification; responses should clear it.
    rejected: bool = False


def get_session_state(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    options: Annotated[IdentityOptions, Depends(get_identity_options)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> SessionState:
    """
    Resolve the request's session: verify the cookie, then the security stamp.

    Any failure makes the request anonymous; it never raises by itself.
    """
    token = request.cookies.get(options.cookie.name)
    if not token:
        return SessionState(principal=None)
    try:
        principal = deserialize_principal(token, options, clock())
    except InvalidSession as e:
        logger.info("Session cookie rejected: %s", e)
        return SessionState(principal=None, rejected=True)
    if validate_security_stamp(db, principal) is None:
        return SessionState(principal=None, rejected=True)
    return SessionState(principal=principal)


def require_principal(
    state: Annotated[SessionState, Depends(get_session_state)],
) -> SessionPrincipal:
    """Dependency: require a valid session. Raises 401 otherwise."""
    if state.principal is None:
        raise AuthenticationRequired(clear_cookie=state.rejected)
    return state.principal


def require_roles(*roles: str) -> Callable[..., SessionPrincipal]:
    """Dependency factory: require a session holding at least one of roles. Raises 403 otherwise."""

    def _require(
        principal: Annotated[SessionPrincipal, Depends(require_principal)],
    ) -> SessionPrincipal:
        if not any(principal.is_in_role(r) for r in roles):
            logger.info("Access denied for user id=%s (needs one of %s)", principal.user_id, roles)
            raise AccessDenied()
        return principal

    return _require


def issue_session_cookie(
    response: Response,
    request: Request,
    principal: SessionPrincipal,
    options: IdentityOptions,
) -> None:
    """Write the signed principal as a persistent HttpOnly cookie expiring at principal.expires_at."""
    cookie = options.cookie
    max_age = int((principal.expires_at - principal.issued_at).total_seconds())
    response.set_cookie(
        key=cookie.name,
        value=serialize_principal(principal, options),
        max_age=max_age,
        expires=principal.expires_at.astimezone(timezone.utc),
        path="/",
        secure=request.url.scheme == "https",
        httponly=cookie.http_only,
        samesite=cookie.same_site,
    )


def clear_session_cookie(response: Response, request: Request, options: IdentityOptions) -> None:
    response.delete_cookie(
        key=options.cookie.name,
        path="/",
        secure=request.url.scheme == "https",
        httponly=options.cookie.http_only,
        samesite=options.cookie.same_site,
    )
