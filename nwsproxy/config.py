from __future__ import annotations

import os

APP_NAME = "NWS Forecast Proxy"

NWS_BASE_URL = os.environ.get("WEATHER_NWS_BASE_URL", "https://api.weather.gov").rstrip("/")

USER_AGENT = os.environ.get("WEATHER_USER_AGENT", "WeatherService/1.0")
HTTP_TIMEOUT_SECONDS = float(os.environ.get("WEATHER_HTTP_TIMEOUT_SECONDS", "10"))

LOG_LEVEL = os.environ.get("WEATHER_LOG_LEVEL", "INFO")

HOST = os.environ.get("WEATHER_HOST", "0.0.0.0")
PORT = int(os.environ.get("WEATHER_PORT", "8080"))

cors = os.environ.get("WEATHER_CORS_ORIGINS")
CORS_ORIGINS = [o.strip() for o in cors.split(",")] if cors else ["*"]
