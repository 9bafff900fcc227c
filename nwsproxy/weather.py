from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nwsproxy import config

logger = logging.getLogger(__name__)

# Fahrenheit
HOT_THRESHOLD = 80.0
COLD_THRESHOLD = 50.0

_INF_LITERALS = {"inf", "infinity"}


class TemperatureCategory(str, Enum):
    HOT = "hot"
    MODERATE = "moderate"
    COLD = "cold"


class CoordinateError(ValueError):
    """Raised for missing, malformed or out-of-range query coordinates."""


class WeatherError(Exception):
    """Raised when either upstream hop fails; the message names the stage."""


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float


# ---------- Models ----------
class WeatherResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")
    forecast: str = ""
    temperature: float = 0
    category: str = ""
    error: Optional[str] = None


class GridProperties(BaseModel):
    model_config = ConfigDict(extra="ignore")
    forecast: Optional[str] = None


class GridResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")
    properties: GridProperties = Field(default_factory=GridProperties)


class ForecastPeriod(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    temperature: float
    short_forecast: str = Field(default="", alias="shortForecast")


class ForecastProperties(BaseModel):
    model_config = ConfigDict(extra="ignore")
    periods: List[ForecastPeriod] = []


class ForecastResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")
    properties: ForecastProperties = Field(default_factory=ForecastProperties)


# ---------- Validation ----------
def is_valid_coordinates(lat: float, lon: float) -> bool:
    # NaN fails every comparison, so it is rejected here too
    return -90 <= lat <= 90 and -180 <= lon <= 180


def _parse_float(raw: str) -> float:
    # Plain ASCII decimal only: float() would also take padding, underscores and
    # non-ASCII digits
    if not raw.isascii() or "_" in raw or raw != raw.strip():
        raise ValueError(f"malformed number: {raw!r}")
    value = float(raw)
    if math.isinf(value) and raw.lstrip("+-").lower() not in _INF_LITERALS:
        raise ValueError(f"number out of range: {raw!r}")
    return value


def parse_coordinates(lat_raw: str | None, lon_raw: str | None) -> Coordinate:
    if not lat_raw or not lon_raw:
        raise CoordinateError("latitude and longitude are required")
    try:
        lat = _parse_float(lat_raw)
    except ValueError:
        raise CoordinateError("invalid latitude format") from None
    try:
        lon = _parse_float(lon_raw)
    except ValueError:
        raise CoordinateError("invalid longitude format") from None
    if not is_valid_coordinates(lat, lon):
        raise CoordinateError("coordinates out of valid range")
    return Coordinate(lat=lat, lon=lon)


def categorize_temperature(temp: float) -> TemperatureCategory:
    """Cold <= 50.0 < Moderate < 80.0 <= Hot."""
    if temp >= HOT_THRESHOLD:
        return TemperatureCategory.HOT
    if temp <= COLD_THRESHOLD:
        return TemperatureCategory.COLD
    return TemperatureCategory.MODERATE


# ---------- Upstream ----------
class _Stages(NamedTuple):
    request: str
    status: str
    read: str


_GRID_STAGES = _Stages("error making request", "unexpected status code", "error reading response")
_FORECAST_STAGES = _Stages(
    "error fetching forecast",
    "unexpected forecast status code",
    "error reading forecast response",
)


def new_client() -> httpx.AsyncClient:
    # Timeout applies to each call on its own; the two hops do not share a deadline
    return httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS)


def _headers() -> dict:
    return {"User-Agent": config.USER_AGENT, "Accept": "application/geo+json"}


def build_grid_url(lat: float, lon: float) -> str:
    # NWS redirects points lookups with more than four decimal places
    return str(httpx.URL(f"{config.NWS_BASE_URL}/points/{lat:.4f},{lon:.4f}"))


async def _get_body(client: httpx.AsyncClient, url: str, stages: _Stages) -> bytes:
    request = client.build_request("GET", url, headers=_headers())
    try:
        response = await client.send(request, stream=True)
    except httpx.RequestError as e:
        raise WeatherError(f"{stages.request}: {e}") from e
    try:
        if response.status_code != 200:
            raise WeatherError(f"{stages.status}: {response.status_code}")
        try:
            return await response.aread()
        except (httpx.RequestError, httpx.StreamError) as e:
            raise WeatherError(f"{stages.read}: {e}") from e
    finally:
        await response.aclose()


async def fetch_grid(client: httpx.AsyncClient, lat: float, lon: float) -> GridResponse:
    try:
        grid_url = build_grid_url(lat, lon)
    except httpx.InvalidURL as e:
        raise WeatherError(f"error building grid URL: {e}") from e

    body = await _get_body(client, grid_url, _GRID_STAGES)
    try:
        grid = GridResponse.model_validate_json(body)
    except ValidationError as e:
        raise WeatherError(f"error parsing grid response: {e}") from e
    if not grid.properties.forecast:
        raise WeatherError("grid response missing forecast URL")
    return grid


def validate_forecast_url(forecast_url: str) -> str:
    """Refuse forecast URLs that point anywhere but the configured NWS host.

    The URL comes from the points response, so it is untrusted input.
    """
    try:
        url = httpx.URL(forecast_url)
    except httpx.InvalidURL as e:
        raise WeatherError(f"invalid forecast URL: {e}") from e
    base = httpx.URL(config.NWS_BASE_URL)
    if url.host != base.host or url.port != base.port:
        raise WeatherError("invalid forecast URL domain")
    return str(url)


async def fetch_forecast(client: httpx.AsyncClient, forecast_url: str) -> ForecastResponse:
    url = validate_forecast_url(forecast_url)
    body = await _get_body(client, url, _FORECAST_STAGES)
    try:
        forecast = ForecastResponse.model_validate_json(body)
    except ValidationError as e:
        raise WeatherError(f"error parsing forecast response: {e}") from e
    if not forecast.properties.periods:
        raise WeatherError("no forecast periods available")
    return forecast


async def _get_weather(client: httpx.AsyncClient, lat: float, lon: float) -> WeatherResponse:
    grid = await fetch_grid(client, lat, lon)
    forecast = await fetch_forecast(client, grid.properties.forecast)

    # Upstream order is chronological; the first period is today
    today = forecast.properties.periods[0]
    logger.debug("forecast for %.4f,%.4f: %s %s", lat, lon, today.temperature, today.short_forecast)
    return WeatherResponse(
        forecast=today.short_forecast,
        temperature=today.temperature,
        category=categorize_temperature(today.temperature).value,
    )


async def get_weather(lat: float, lon: float, client: httpx.AsyncClient | None = None) -> WeatherResponse:
    if not is_valid_coordinates(lat, lon):
        raise WeatherError(
            "invalid coordinates: latitude must be between -90 and 90, longitude between -180 and 180"
        )
    if client is not None:
        return await _get_weather(client, lat, lon)
    async with new_client() as c:
        return await _get_weather(c, lat, lon)
