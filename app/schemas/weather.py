"""Schemas for the sample weather forecast endpoint."""

import datetime

from pydantic import computed_field

from app.schemas.users import CamelModel


class WeatherForecast(CamelModel):
    date: datetime.date
    temperature_c: int
    summary: str | None = None

    @computed_field(alias="temperatureF")
    @property
    def temperature_f(self) -> int:
        return 32 + int(self.temperature_c / 0.5556)
