"""Pydantic request/response schemas."""

from app.schemas.auth import SessionPrincipal
from app.schemas.health import HealthResponse
from app.schemas.users import (
    AuthResponse,
    LoginForm,
    RegisterForm,
    UserInfo,
    UsersListResponse,
)
from app.schemas.weather import WeatherForecast

__all__ = [
    "AuthResponse",
    "HealthResponse",
    "LoginForm",
    "RegisterForm",
    "SessionPrincipal",
    "UserInfo",
    "UsersListResponse",
    "WeatherForecast",
]
