"""Shared fixtures: a scripted api.weather.gov stand-in and an app client."""

from typing import Callable, Dict, List, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from nwsproxy.main import app, get_http_client

POINTS_PATH = "/points/40.7128,-74.0060"
FORECAST_URL = "https://api.weather.gov/gridpoints/OKX/33,35/forecast"
FORECAST_PATH = "/gridpoints/OKX/33,35/forecast"

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def points_body(forecast_url: str = FORECAST_URL) -> dict:
    return {
        "properties": {
            "gridId": "OKX",
            "gridX": 33,
            "gridY": 35,
            "forecast": forecast_url,
        }
    }


def forecast_body(*periods: dict) -> dict:
    return {"properties": {"updated": "2026-10-19T12:00:00+00:00", "periods": list(periods)}}


def period(temperature: float, short_forecast: str) -> dict:
    return {
        "number": 1,
        "name": "Today",
        "temperature": temperature,
        "temperatureUnit": "F",
        "shortForecast": short_forecast,
    }


class FakeNWS:
    """Routes requests by URL path and records everything it receives."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"title": "Not Found"})
        if callable(route):
            return route(request)
        return route

    def serve(self, temperature: float = 85, short_forecast: str = "Sunny") -> "FakeNWS":
        self.routes[POINTS_PATH] = lambda request: httpx.Response(200, json=points_body())
        self.routes[FORECAST_PATH] = lambda request: httpx.Response(
            200, json=forecast_body(period(temperature, short_forecast))
        )
        return self

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self), timeout=10)


@pytest.fixture
def nws() -> FakeNWS:
    return FakeNWS()


@pytest.fixture
def api_client(nws: FakeNWS):
    client = nws.client()
    app.dependency_overrides[get_http_client] = lambda: client
    # Not used as a context manager, so the lifespan's real client is never opened
    yield TestClient(app)
    app.dependency_overrides.clear()
