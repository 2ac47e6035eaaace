"""Sample forecast endpoint; any signed-in user may call it."""

import random
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.session import get_clock, require_principal
from app.core.security import Clock
from app.schemas.auth import SessionPrincipal
from app.schemas.weather import WeatherForecast

router = APIRouter()

SUMMARIES = (
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
)
FORECAST_DAYS = 5


@router.get("", response_model=list[WeatherForecast])
def get_weather_forecast(
    _user: Annotated[SessionPrincipal, Depends(require_principal)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> list[WeatherForecast]:
    """Five days of made-up weather starting tomorrow."""
    today = clock().date()
    return [
        WeatherForecast(
            date=today + timedelta(days=i),
            temperature_c=random.randint(-20, 54),
            summary=random.choice(SUMMARIES),
        )
        for i in range(1, FORECAST_DAYS + 1)
    ]
