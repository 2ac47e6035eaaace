"""
Identity store operations: users, roles, passwords and lockout.

Every mutating function commits its own unit of work. Integrity failures are
rolled back and re-raised as IdentityError; other database errors propagate.
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import LockoutOptions
from app.core.errors import IdentityError
from app.core.security import hash_password, new_security_stamp, verify_password
from app.models import Role, User

logger = logging.getLogger(__name__)


def normalize(value: str) -> str:
    """Lookup key for case-insensitive email, user name and role matching."""
    return value.strip().upper()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise IdentityError([f"{what}: {e.orig}"]) from e


def find_by_email(db: Session, email: str) -> User | None:
    return db.scalars(
        select(User).where(User.normalized_email == normalize(email)).limit(1)
    ).first()


def find_by_id(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def find_role(db: Session, name: str) -> Role | None:
    return db.scalars(select(Role).where(Role.normalized_name == normalize(name))).first()


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.normalized_email, User.id)))


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    lockout: LockoutOptions,
) -> User:
    """Persist a new user whose user name is its email. Raises IdentityError on rejection."""
    email = email.strip()
    user = User(
        user_name=email,
        normalized_user_name=normalize(email),
        email=email,
        normalized_email=normalize(email),
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password),
        security_stamp=new_security_stamp(),
        lockout_enabled=lockout.allowed_for_new_users,
        access_failed_count=0,
    )
    db.add(user)
    _commit(db, "Could not create user")
    db.refresh(user)
    logger.info("Created user id=%s", user.id)
    return user


def get_or_create_role(db: Session, name: str) -> Role:
    """
    Return the role with this name, creating it if absent.

    A single INSERT ... ON CONFLICT DO NOTHING on the unique normalized name
    means two requests racing on a new role name both end up with the same row.
    """
    name = name.strip()
    values = {"name": name, "normalized_name": normalize(name)}
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(Role).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(Role).values(**values)
    else:
        raise IdentityError([f"Unsupported database dialect for role creation: {dialect}"])
    result = db.execute(stmt.on_conflict_do_nothing(index_elements=["normalized_name"]))
    _commit(db, "Could not create role")
    if result.rowcount:
        logger.info("Created role %r", name)
    role = find_role(db, name)
    if role is None:
        raise IdentityError([f"Role {name!r} could not be created"])
    return role


def add_to_role(db: Session, user: User, role: Role) -> None:
    """Link user to role. Raises IdentityError if the user already has it."""
    if any(r.id == role.id for r in user.roles):
        raise IdentityError([f"User already in role '{role.name}'."])
    user.roles.append(role)
    _commit(db, "Could not add user to role")


def get_roles(user: User) -> list[str]:
    return [r.name for r in user.roles]


def check_password(user: User, password: str) -> bool:
    return verify_password(password, user.password_hash)


def is_locked_out(user: User, now: datetime) -> bool:
    if not user.lockout_enabled or user.lockout_end is None:
        return False
    return _as_utc(user.lockout_end) > now


def access_failed(db: Session, user: User, lockout: LockoutOptions, now: datetime) -> bool:
    """
    Record a failed password check. Returns True if this failure locked the user out.

    Reaching max_failed_attempts starts a lockout window and resets the counter.
    """
    if not user.lockout_enabled:
        return False
    user.access_failed_count = (user.access_failed_count or 0) + 1
    locked = user.access_failed_count >= lockout.max_failed_attempts
    if locked:
        user.lockout_end = now + timedelta(minutes=lockout.lockout_minutes)
        user.access_failed_count = 0
    _commit(db, "Could not record failed access")
    if locked:
        logger.warning("User id=%s locked out until %s", user.id, user.lockout_end)
    return locked


def reset_access_failed(db: Session, user: User) -> None:
    if user.access_failed_count == 0 and user.lockout_end is None:
        return
    user.access_failed_count = 0
    user.lockout_end = None
    _commit(db, "Could not reset failed access count")


def change_password(db: Session, user: User, new_password: str) -> None:
    """Replace the password hash and rotate the security stamp (revokes sessions)."""
    user.password_hash = hash_password(new_password)
    update_security_stamp(db, user)


def update_security_stamp(db: Session, user: User) -> None:
    user.security_stamp = new_security_stamp()
    _commit(db, "Could not update security stamp")
    logger.info("Rotated security stamp for user id=%s", user.id)
