r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API exposes demand estimates, 12-month range forecasts, stock-out risk
and historical analytics for the medicine catalogue.  A health endpoint is
also provided for readiness/liveness checks.  Configuration is read from
environment variables and YAML files in `configs/`.
"""


from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root before the routers read their environment
BASE_DIR = Path(__file__).resolve().parents[2]  # repo root
load_dotenv(BASE_DIR / ".env")

from .api.v1 import (  # noqa: E402
    analytics,
    catalog,
    configs,
    data,
    forecasts,
    health,
    records,
    risk,
)
from .core.config import get_settings  # noqa: E402
from .core.observability import RequestMetricsMiddleware, metrics_endpoint  # noqa: E402

settings = get_settings()

logging.getLogger(__name__).info(
    "MediCast starting config_dir=%s data_dir=%s seed=%s",
    settings.config_dir,
    settings.data_dir,
    settings.random_seed,
)

app = FastAPI(title="MediCast Forecast API", version="0.1.0")

origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestMetricsMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(catalog.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")
app.include_router(risk.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(records.router, prefix="/api/v1")
app.include_router(configs.router, prefix="/api/v1")
app.include_router(data.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()
