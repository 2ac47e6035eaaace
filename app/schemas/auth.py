"""Session principal carried (signed) inside the session cookie."""

from datetime import datetime

from pydantic import BaseModel, Field


class SessionPrincipal(BaseModel):
    """Authenticated identity attached to a request after cookie verification."""

    user_id: str
    user_name: str
    given_name: str
    surname: str
    security_stamp: str
    roles: list[str] = Field(default_factory=list)
    issued_at: datetime
    expires_at: datetime

    def is_in_role(self, role: str) -> bool:
        wanted = role.strip().upper()
        return any(r.upper() == wanted for r in self.roles)
