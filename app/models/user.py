"""ORM models for identity: users, roles and the user-role link table."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
)
from sqlalchemy.orm import relationship

from app.models.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    """Named permission group. Unique by normalized (upper-cased) name."""

    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(256), nullable=False)
    normalized_name = Column(String(256), nullable=False, unique=True, index=True)


class User(Base):
    """
    User account for cookie-session authentication and role membership.

    user_name always equals email. security_stamp changes whenever credentials
    change, which invalidates every session issued before the change.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_name = Column(String(256), nullable=False)
    normalized_user_name = Column(String(256), nullable=False, index=True)
    email = Column(String(256), nullable=False)
    normalized_email = Column(String(256), nullable=False, index=True)
    first_name = Column(String(256), nullable=False)
    last_name = Column(String(256), nullable=False)
    password_hash = Column(String(255), nullable=False)
    security_stamp = Column(String(64), nullable=False)
    concurrency_stamp = Column(String(36), nullable=False, default=_new_id)
    lockout_enabled = Column(Boolean, nullable=False, default=True)
    lockout_end = Column(DateTime(timezone=True), nullable=True)
    access_failed_count = Column(Integer, nullable=False, default=0)

    roles = relationship(Role, secondary=user_roles, lazy="selectin", order_by=Role.name)
