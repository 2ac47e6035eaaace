"""Request/response schemas for the /users endpoints (camelCase on the wire)."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterForm(CamelModel):
    """Registration form; every field is required."""

    email: EmailStr = Field(..., description="Email, also the user name")
    password: str = Field(..., min_length=1, max_length=128, description="Password")
    first_name: str = Field(..., min_length=1, max_length=256)
    last_name: str = Field(..., min_length=1, max_length=256)
    role: str = Field(..., min_length=1, max_length=256, description="Role name, created if new")

    @field_validator("first_name", "last_name", "role")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field must not be blank.")
        return v.strip()


class LoginForm(CamelModel):
    """Credentials for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserInfo(CamelModel):
    """Public projection of a user plus role names."""

    id: str
    user_name: str
    email: str
    first_name: str
    last_name: str
    roles: list[str]


class AuthResponse(BaseModel):
    """Envelope returned by register and login."""

    message: str
    data: UserInfo


class UsersListResponse(BaseModel):
    """Response for GET /users/list (admin only)."""

    users: list[UserInfo]
