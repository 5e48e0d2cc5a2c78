"""
OpenWeatherMap lookups used by the assistant's weather tools.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

OPENWEATHER_URL = "http://api.openweathermap.org/data/2.5/weather"
WEATHER_TIMEOUT_SECONDS = 10.0

MAX_OUTSIDE_FEELS_LIKE = 25
MAX_OUTSIDE_HUMIDITY = 80
MAX_OUTSIDE_WIND_SPEED = 5


class WeatherLookupError(RuntimeError):
    pass


class WeatherMain(BaseModel):
    feels_like: float
    humidity: float


class WeatherCondition(BaseModel):
    main: str


class WeatherWind(BaseModel):
    speed: float


class WeatherReport(BaseModel):
    main: WeatherMain
    weather: list[WeatherCondition] = Field(default_factory=list)
    wind: WeatherWind


async def get_weather(
    city: str,
    country: str,
    *,
    api_key: str | None,
    client: httpx.AsyncClient | None = None,
) -> WeatherReport:
    if not city or not city.strip() or not country or not country.strip():
        raise WeatherLookupError("Invalid address")

    params = {
        "q": f"{city.strip()},{country.strip()}",
        "appid": api_key or "",
        "units": "metric",
    }
    logger.info("Fetching weather for %s, %s", city, country)

    try:
        if client is not None:
            response = await client.get(OPENWEATHER_URL, params=params)
        else:
            async with httpx.AsyncClient(timeout=WEATHER_TIMEOUT_SECONDS) as owned:
                response = await owned.get(OPENWEATHER_URL, params=params)
        response.raise_for_status()
        return WeatherReport.model_validate(response.json())
    except httpx.HTTPStatusError as exc:
        raise WeatherLookupError(
            f"weather lookup failed with status {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise WeatherLookupError(f"weather lookup failed: {exc}") from exc
    except (ValidationError, ValueError) as exc:
        raise WeatherLookupError("weather lookup returned an unexpected payload") from exc


def can_go_outside(report: WeatherReport) -> bool:
    first_condition = report.weather[0].main if report.weather else ""
    return (
        report.main.feels_like < MAX_OUTSIDE_FEELS_LIKE
        and report.main.humidity < MAX_OUTSIDE_HUMIDITY
        and first_condition != "Rain"
        and report.wind.speed < MAX_OUTSIDE_WIND_SPEED
    )


def format_temperature(value: float) -> str:
    return f"{value:g}"
