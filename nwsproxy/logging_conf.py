"""Logging setup and the per-request access log middleware."""

from __future__ import annotations

import logging
import sys
import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from nwsproxy import config

logger = logging.getLogger("nwsproxy.access")


def setup_logging(level: Optional[str] = None) -> None:
    log_level = (level or config.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # httpx logs every outbound request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Logs method and URL of every request, then status and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        logger.info("%s %s", request.method, request.url)
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.3fs)",
            request.method,
            request.url.path,
            response.status_code,
            time.perf_counter() - start,
        )
        return response
