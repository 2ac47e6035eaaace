"""HTTP routes."""

from fastapi import APIRouter

from app.api import health, users, weather

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(weather.router, prefix="/weatherforecast", tags=["weather"])
