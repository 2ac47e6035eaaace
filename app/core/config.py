"""Application configuration loaded from environment variables."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "sqlite://",
    "sqlite+pysqlite://",
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "postgres+psycopg2://",
)


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    API_PREFIX: str = ""
    # Browser origins allowed to send the session cookie (comma-separated).
    CORS_ORIGINS: str = "http://localhost:3000"

    DATABASE_URL: str = "sqlite:///./gatehouse.db"

    # Signing key for the session cookie payload.
    SECRET_KEY: SecretStr = SecretStr("change-me-in-production")
    TOKEN_ALGORITHM: str = "HS256"

    # Session cookie
    SESSION_COOKIE_NAME: str = ".my.application.cookie"
    SESSION_EXPIRE_DAYS: int = 30

    # Password policy; everything off means any non-empty password is accepted.
    PASSWORD_REQUIRE_DIGIT: bool = False
    PASSWORD_REQUIRE_LOWERCASE: bool = False
    PASSWORD_REQUIRE_UPPERCASE: bool = False
    PASSWORD_REQUIRE_NON_ALPHANUMERIC: bool = False
    PASSWORD_REQUIRED_LENGTH: int = 0
    PASSWORD_REQUIRED_UNIQUE_CHARS: int = 0

    # Lockout after repeated failed logins; counted and enforced only when LOCKOUT_ENFORCED.
    LOCKOUT_ENFORCED: bool = False
    LOCKOUT_MAX_FAILED_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 5
    LOCKOUT_ALLOWED_FOR_NEW_USERS: bool = True

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        if not any(v.startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a SQLite or PostgreSQL URL (e.g. sqlite:///./gatehouse.db)"
            )
        return v.strip()

    @field_validator("API_PREFIX")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            raise ValueError("API_PREFIX must be empty or start with '/'")
        return v

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("SECRET_KEY must be set and non-empty")
        return v

    @field_validator("TOKEN_ALGORITHM")
    @classmethod
    def validate_token_algorithm(cls, v: str) -> str:
        if v.strip() not in ("HS256", "HS384", "HS512"):
            raise ValueError("TOKEN_ALGORITHM must be one of HS256, HS384, HS512")
        return v.strip()

    @field_validator("SESSION_COOKIE_NAME")
    @classmethod
    def validate_cookie_name(cls, v: str) -> str:
        if not v or not v.strip() or any(c in v for c in " ;,="):
            raise ValueError("SESSION_COOKIE_NAME must be a non-empty cookie token")
        return v.strip()

    @field_validator("SESSION_EXPIRE_DAYS")
    @classmethod
    def validate_session_expire_days(cls, v: int) -> int:
        if v < 1 or v > 365:
            raise ValueError("SESSION_EXPIRE_DAYS must be between 1 and 365")
        return v

    @field_validator("PASSWORD_REQUIRED_LENGTH", "PASSWORD_REQUIRED_UNIQUE_CHARS")
    @classmethod
    def validate_password_counts(cls, v: int) -> int:
        if v < 0 or v > 128:
            raise ValueError("Password length rules must be between 0 and 128")
        return v

    @field_validator("LOCKOUT_MAX_FAILED_ATTEMPTS")
    @classmethod
    def validate_lockout_attempts(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("LOCKOUT_MAX_FAILED_ATTEMPTS must be between 1 and 100")
        return v

    @field_validator("LOCKOUT_MINUTES")
    @classmethod
    def validate_lockout_minutes(cls, v: int) -> int:
        if v < 1 or v > 10080:
            raise ValueError(
                "LOCKOUT_MINUTES must be between 1 and 10080 (1 min to 7 days)"
            )
        return v

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@dataclass(frozen=True)
class PasswordOptions:
    require_digit: bool = False
    require_lowercase: bool = False
    require_uppercase: bool = False
    require_non_alphanumeric: bool = False
    required_length: int = 0
    required_unique_chars: int = 0


@dataclass(frozen=True)
class LockoutOptions:
    enforced: bool = False
    max_failed_attempts: int = 5
    lockout_minutes: int = 5
    allowed_for_new_users: bool = True


@dataclass(frozen=True)
class CookieOptions:
    name: str = ".my.application.cookie"
    http_only: bool = True
    same_site: Literal["lax", "strict", "none"] = "lax"
    # Fixed at issuance; requests never extend it.
    expire_days: int = 30


@dataclass(frozen=True)
class ClaimTypes:
    """Keys used for each claim inside the signed session payload."""

    user_id: str = "sub"
    user_name: str = "name"
    given_name: str = "given_name"
    surname: str = "family_name"
    security_stamp: str = "stamp"
    role: str = "roles"


@dataclass(frozen=True)
class IdentityOptions:
    """Immutable identity configuration handed to the app at startup."""

    password: PasswordOptions
    lockout: LockoutOptions
    cookie: CookieOptions
    claims: ClaimTypes
    secret_key: str
    algorithm: str = "HS256"


def build_identity_options(settings: Settings) -> IdentityOptions:
    """Translate flat settings into the identity option tree."""
    return IdentityOptions(
        password=PasswordOptions(
            require_digit=settings.PASSWORD_REQUIRE_DIGIT,
            require_lowercase=settings.PASSWORD_REQUIRE_LOWERCASE,
            require_uppercase=settings.PASSWORD_REQUIRE_UPPERCASE,
            require_non_alphanumeric=settings.PASSWORD_REQUIRE_NON_ALPHANUMERIC,
            required_length=settings.PASSWORD_REQUIRED_LENGTH,
            required_unique_chars=settings.PASSWORD_REQUIRED_UNIQUE_CHARS,
        ),
        lockout=LockoutOptions(
            enforced=settings.LOCKOUT_ENFORCED,
            max_failed_attempts=settings.LOCKOUT_MAX_FAILED_ATTEMPTS,
            lockout_minutes=settings.LOCKOUT_MINUTES,
            allowed_for_new_users=settings.LOCKOUT_ALLOWED_FOR_NEW_USERS,
        ),
        cookie=CookieOptions(
            name=settings.SESSION_COOKIE_NAME,
            expire_days=settings.SESSION_EXPIRE_DAYS,
        ),
        claims=ClaimTypes(),
        secret_key=settings.SECRET_KEY.get_secret_value(),
        algorithm=settings.TOKEN_ALGORITHM,
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
