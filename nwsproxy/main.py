from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nwsproxy import __version__, config, weather
from nwsproxy.logging_conf import AccessLogMiddleware, setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pooled client for every request; closed on shutdown
    async with weather.new_client() as client:
        app.state.http_client = client
        yield


app = FastAPI(title=config.APP_NAME, version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)
app.add_middleware(AccessLogMiddleware)


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def _first_param(request: Request, name: str) -> Optional[str]:
    # A repeated parameter resolves to its first occurrence
    values = request.query_params.getlist(name)
    return values[0] if values else None


def _error(status_code: int, message: str) -> JSONResponse:
    body = weather.WeatherResponse(error=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ---------- Endpoints ----------
@app.get("/health")
def health():
    return {"ok": True, "name": config.APP_NAME, "version": app.version}


@app.get("/weather", response_model=weather.WeatherResponse, response_model_exclude_none=True)
async def get_weather(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    # Raw strings so malformed values get our own 400 messages, not a 422
    lat = _first_param(request, "lat")
    lon = _first_param(request, "lon")
    try:
        coord = weather.parse_coordinates(lat, lon)
    except weather.CoordinateError as e:
        return _error(400, str(e))

    try:
        return await weather.get_weather(coord.lat, coord.lon, client=client)
    except weather.WeatherError as e:
        logger.warning("forecast lookup failed for %s,%s: %s", coord.lat, coord.lon, e)
        return _error(500, str(e))


def run() -> None:
    setup_logging()
    logger.info("Starting server on %s:%d", config.HOST, config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_config=None)
