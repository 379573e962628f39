"""Environmental data provider (weather and air quality).

Live readings come from OpenWeatherMap when ``WEATHER_API_KEY`` is set.
Any failure falls back to a synthetic reading so a location update is never
held up by missing weather data.
"""

import random
from typing import Any

import httpx
from httpx import HTTPStatusError, TimeoutException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from lightning_tracker.core.config import Settings, settings
from lightning_tracker.core.logging import get_logger
from lightning_tracker.core.retry import (
    CircuitBreakerOpenError,
    retry_with_backoff,
    with_circuit_breaker,
)

logger = get_logger(__name__)

WEATHER_SERVICE = "weather_api"

MOCK_AIR_QUALITY = ("Good", "Moderate", "Unhealthy for Sensitive Groups", "Unhealthy")

# OpenWeatherMap air pollution index (1-5)
AQI_CATEGORIES = {
    1: "Good",
    2: "Fair",
    3: "Moderate",
    4: "Poor",
    5: "Very Poor",
}


class Reading(BaseModel):
    """Environmental measurements attached to a location update."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    temperature: float | None = None  # °C
    humidity: float | None = None  # %
    wind_speed: float | None = None  # km/h
    visibility: float | None = None  # km
    air_quality: str | None = None
    pressure: float | None = None  # hPa
    uv_index: float | None = None
    source: str = "mock"

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict as sent to clients and stored with location records."""
        return self.model_dump(by_alias=True)


class WeatherClientError(Exception):
    """Live weather lookup failed; ``cause`` says why."""

    def __init__(self, cause: str, message: str) -> None:
        super().__init__(message)
        self.cause = cause


def mock_reading() -> Reading:
    """Uniformly random reading within plausible ranges."""
    return Reading(
        temperature=round(random.uniform(15, 35)),
        humidity=round(random.uniform(40, 80)),
        pressure=round(random.uniform(1000, 1050)),
        wind_speed=round(random.uniform(0, 25)),
        visibility=round(random.uniform(5, 20)),
        uv_index=round(random.uniform(0, 11)),
        air_quality=random.choice(MOCK_AIR_QUALITY),
        source="mock",
    )


@retry_with_backoff(max_attempts=2, min_wait=0, max_wait=0.5)
@with_circuit_breaker(service_name=WEATHER_SERVICE)
async def request_weather_json(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, Any],
) -> dict[str, Any]:
    """GET a weather endpoint and return its JSON body."""
    response = await client.get(url, params=params)
    response.raise_for_status()
    data: dict[str, Any] = response.json()
    return data


def classify_failure(error: BaseException) -> str:
    """Short cause tag for operator logs."""
    if isinstance(error, CircuitBreakerOpenError):
        return "circuit_open"
    if isinstance(error, HTTPStatusError):
        status_code = error.response.status_code
        if status_code in (401, 403):
            return "auth"
        if status_code == 429:
            return "rate_limited"
        return f"http_{status_code}"
    if isinstance(error, TimeoutException):
        return "timeout"
    if isinstance(error, httpx.HTTPError):
        return "network"
    if isinstance(error, (KeyError, TypeError, ValueError, IndexError)):
        return "malformed"
    return "unexpected"


def parse_weather(weather: dict[str, Any], pollution: dict[str, Any]) -> Reading:
    """Build a Reading from OpenWeatherMap current-weather and air-pollution bodies."""
    main = weather["main"]
    wind_ms = weather.get("wind", {}).get("speed")
    visibility_m = weather.get("visibility")
    aqi = pollution["list"][0]["main"]["aqi"]

    return Reading(
        temperature=float(main["temp"]),
        humidity=float(main["humidity"]),
        pressure=float(main["pressure"]),
        wind_speed=round(float(wind_ms) * 3.6, 1) if wind_ms is not None else None,
        visibility=round(float(visibility_m) / 1000.0, 1) if visibility_m is not None else None,
        air_quality=AQI_CATEGORIES.get(int(aqi)),
        uv_index=None,
        source="openweathermap",
    )


class EnvironmentalDataProvider:
    """Coordinates in, Reading out; never raises."""

    def __init__(self, config: Settings | None = None) -> None:
        config = config or settings
        self.api_key = config.weather_api_key.strip()
        self.base_url = config.weather_api_url.rstrip("/")
        self.timeout = config.weather_timeout_seconds

    @property
    def is_live(self) -> bool:
        return bool(self.api_key)

    async def _fetch_live(self, latitude: float, longitude: float) -> Reading:
        params = {"lat": latitude, "lon": longitude, "appid": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                weather = await request_weather_json(
                    client,
                    f"{self.base_url}/data/2.5/weather",
                    {**params, "units": "metric"},
                )
                pollution = await request_weather_json(
                    client,
                    f"{self.base_url}/data/2.5/air_pollution",
                    params,
                )
            return parse_weather(weather, pollution)
        except Exception as e:
            raise WeatherClientError(classify_failure(e), str(e)) from e

    async def fetch(self, latitude: float, longitude: float) -> Reading:
        """Live reading when configured, synthetic reading otherwise."""
        if not self.is_live:
            return mock_reading()

        try:
            return await self._fetch_live(latitude, longitude)
        except WeatherClientError as e:
            logger.warning(
                f"Weather lookup failed ({e.cause}), using mock data",
                extra={"event_type": "weather_fallback", "cause": e.cause},
            )
            return mock_reading()
