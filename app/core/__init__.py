"""Core app configuration, database and security primitives."""

from app.core.config import IdentityOptions, get_settings, settings
from app.core.database import get_db

__all__ = ["IdentityOptions", "get_settings", "settings", "get_db"]
