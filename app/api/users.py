"""User registration, login/logout and profile endpoints backed by the cookie session."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session

from app.api.session import (
    SessionState,
    clear_session_cookie,
    get_clock,
    get_identity_options,
    get_session_state,
    issue_session_cookie,
    require_principal,
    require_roles,
)
from app.core.config import IdentityOptions
from app.core.database import get_db
from app.core.errors import ProblemError
from app.core.security import Clock, password_policy_errors
from app.models import User
from app.schemas.auth import SessionPrincipal
from app.schemas.users import (
    AuthResponse,
    LoginForm,
    RegisterForm,
    UserInfo,
    UsersListResponse,
)
from app.services import identity
from app.services.claims import build_principal

logger = logging.getLogger(__name__)
router = APIRouter()

# Business-rule failures (duplicate user, bad credentials).
UNPROCESSABLE = 422


def _user_info(user: User) -> UserInfo:
    return UserInfo(
        id=str(user.id),
        user_name=user.user_name,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=identity.get_roles(user),
    )


def _check_password_policy(password: str, options: IdentityOptions) -> None:
    errors = password_policy_errors(password, options.password)
    if errors:
        raise RequestValidationError(
            [{"loc": ("body", "password"), "msg": msg, "type": "value_error"} for msg in errors]
        )


@router.post("/register", response_model=AuthResponse)
def register(
    form: RegisterForm,
    db: Annotated[Session, Depends(get_db)],
    options: Annotated[IdentityOptions, Depends(get_identity_options)],
) -> AuthResponse:
    """Register a user and add it to the named role, creating the role if needed."""
    _check_password_policy(form.password, options)

    if identity.find_by_email(db, form.email) is not None:
        raise ProblemError(UNPROCESSABLE, "User already exists")

    user = identity.create_user(
        db,
        email=form.email,
        password=form.password,
        first_name=form.first_name,
        last_name=form.last_name,
        lockout=options.lockout,
    )
    role = identity.get_or_create_role(db, form.role)
    identity.add_to_role(db, user, role)

    logger.info("Registered user id=%s with role %r", user.id, role.name)
    return AuthResponse(message="Registration successful", data=_user_info(user))


@router.post("/login", response_model=AuthResponse)
def login(
    form: LoginForm,
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    options: Annotated[IdentityOptions, Depends(get_identity_options)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AuthResponse:
    """
    Check credentials and sign the user in with a persistent session cookie.

    The cookie expires expire_days after issuance and is never extended.
    Failed attempts leave any existing cookie untouched. With lockout enforced
    they also count toward a temporary lockout.
    """
    user = identity.find_by_email(db, form.email)
    if user is None:
        logger.info("Login failed: unknown email")
        raise ProblemError(UNPROCESSABLE, "User not found")

    now = clock()
    lockout = options.lockout
    if lockout.enforced and identity.is_locked_out(user, now):
        logger.warning("Login refused: user id=%s is locked out", user.id)
        raise ProblemError(UNPROCESSABLE, "User is locked out")

    if not identity.check_password(user, form.password):
        if lockout.enforced:
            identity.access_failed(db, user, lockout, now)
        logger.info("Login failed: invalid password for user id=%s", user.id)
        raise ProblemError(UNPROCESSABLE, "Invalid password")

    if lockout.enforced:
        identity.reset_access_failed(db, user)
    principal = build_principal(user, now, options)
    issue_session_cookie(response, request, principal, options)

    logger.info("User id=%s logged in; session expires %s", user.id, principal.expires_at)
    return AuthResponse(message="Login successful", data=_user_info(user))


@router.post("/logout", response_class=Response)
def logout(
    request: Request,
    principal: Annotated[SessionPrincipal, Depends(require_principal)],
    options: Annotated[IdentityOptions, Depends(get_identity_options)],
) -> Response:
    """Clear the session cookie. Answers 200 with an empty body."""
    response = Response(status_code=status.HTTP_200_OK)
    clear_session_cookie(response, request, options)
    logger.info("User id=%s logged out", principal.user_id)
    return response


@router.get("/isauthenticated")
def is_authenticated(
    request: Request,
    response: Response,
    state: Annotated[SessionState, Depends(get_session_state)],
    options: Annotated[IdentityOptions, Depends(get_identity_options)],
) -> bool:
    """Whether the request carries a valid, unexpired, stamp-matching session."""
    if state.rejected:
        clear_session_cookie(response, request, options)
    return state.principal is not None


@router.get("/getuserinfo", response_model=UserInfo)
def get_user_info(
    principal: Annotated[SessionPrincipal, Depends(require_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> UserInfo:
    """Return the signed-in user's public profile and roles."""
    user = identity.find_by_id(db, principal.user_id)
    if user is None:
        raise ProblemError(status.HTTP_404_NOT_FOUND, "Not Found")
    return _user_info(user)


@router.get("/list", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[SessionPrincipal, Depends(require_roles("admin"))],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users (admin role only)."""
    return UsersListResponse(users=[_user_info(u) for u in identity.list_users(db)])
