r"""backend\app\core\observability.py"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Callable
from urllib.parse import unquote

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from .config import get_settings

LOGGER = logging.getLogger("medicast.requests")

_REQUEST_COUNTER = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
_LATENCY_HISTOGRAM = Histogram(
    "http_request_latency_seconds", "Request latency", ["method", "path"]
)
FORECASTS_GENERATED = Counter(
    "medicast_forecasts_generated_total", "Forecasts computed by kind", ["kind"]
)
RECORD_WRITE_FAILURES = Counter(
    "medicast_record_write_failures_total", "Forecast record writes that failed"
)

_MEDICINE_PATH_PREFIXES = ("/api/v1/risk/", "/api/v1/stock/", "/api/v1/analytics/")


def _medicine_from_request(request: Request) -> str | None:
    medicine = request.query_params.get("medicine")
    if medicine:
        return medicine
    path = request.url.path
    for prefix in _MEDICINE_PATH_PREFIXES:
        if path.startswith(prefix):
            segment = path[len(prefix):].split("/", 1)[0]
            if segment and segment not in {"cache", "low-selling"}:
                return unquote(segment)
    return None


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Middleware enforcing rate limiting, request logging, and Prometheus metrics."""

    _lock: threading.Lock = threading.Lock()
    _buckets: dict[str, deque[float]] = defaultdict(deque)
    _per_minute: int = get_settings().rate_limit_per_min
    _exempt_prefixes: tuple[str, ...] = (
        "/api/v1/health",
        "/metrics",
        "/docs",
        "/redoc",
        "/openapi.json",
    )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("request-id")
            or str(uuid.uuid4())
        )
        medicine = _medicine_from_request(request)
        owner_id = request.headers.get("x-owner-id")

        start_perf = time.perf_counter()
        start_wall = time.time()

        def _finalize(response: Response) -> Response:
            latency = time.perf_counter() - start_perf
            status_code = getattr(response, "status_code", 500)

            _REQUEST_COUNTER.labels(method, path, str(status_code)).inc()
            _LATENCY_HISTOGRAM.labels(method, path).observe(latency)

            log_payload = {
                "timestamp": datetime.fromtimestamp(start_wall, tz=timezone.utc).isoformat(),
                "path": path,
                "method": method,
                "status": status_code,
                "latency_ms": int(latency * 1000),
                "request_id": request_id,
                "client_ip": client_ip,
                "medicine": medicine,
                "owner_id": owner_id,
            }
            LOGGER.info(json.dumps(log_payload))

            response.headers["x-request-id"] = request_id
            return response

        # Rate limiting per client IP
        if self._per_minute > 0 and not path.startswith(self._exempt_prefixes):
            now = time.time()
            with self._lock:
                window = self._buckets[client_ip]
                while window and now - window[0] > 60.0:
                    window.popleft()
                if len(window) >= self._per_minute:
                    error_response = PlainTextResponse("Too Many Requests", status_code=429)
                    return _finalize(error_response)
                window.append(now)

        response: Response
        try:
            response = await call_next(request)
        except Exception:
            # Even if downstream fails we still want metrics/logs; re-raise after logging.
            response = PlainTextResponse(
                "Internal Server Error", status_code=500
            )
            _finalize(response)
            raise

        return _finalize(response)


def metrics_endpoint() -> Response:
    """Return Prometheus metrics payload."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
