"""Routes for demand estimates and the 12-month range forecast."""

from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional, TypeVar

import numpy as np
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, status

from ...core.config import get_settings
from ...core.observability import FORECASTS_GENERATED, RECORD_WRITE_FAILURES
from ...models import schemas
from ...services.forecasting_service import ForecastingService, estimate_record
from ...services.record_store import ForecastRecordStore, get_record_store
from ...services.validation_service import InvalidSelectionError

LOGGER = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")

_forecast_service = ForecastingService(
    config_root=os.getenv("CONFIG_DIR", "configs"),
    rng=np.random.default_rng(get_settings().random_seed),
)


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def _run(kind: str, medicine: Optional[str], compute: Callable[[], T]) -> T:
    """Run a forecast computation and translate service errors to HTTP errors."""

    try:
        result = compute()
    except InvalidSelectionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_selection", str(exc)),
        ) from exc
    except ValueError as exc:
        LOGGER.warning("Forecast rejected for medicine=%s: %s", medicine, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc
    except Exception as exc:  # pragma: no cover
        LOGGER.exception("Unexpected error while forecasting medicine=%s", medicine)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_payload("forecast_failed", "An unexpected error occurred while forecasting."),
        ) from exc
    FORECASTS_GENERATED.labels(kind).inc()
    return result


def _persist_record(store: ForecastRecordStore, record: schemas.ForecastRecordCreate) -> None:
    """Background task: store a forecast summary without affecting the response."""

    if store.insert_safely(record) is None:
        RECORD_WRITE_FAILURES.inc()


@router.get("/forecasts/estimate", response_model=schemas.DemandEstimate)
def get_estimate(
    background_tasks: BackgroundTasks,
    medicine: Optional[str] = Query(None, description="Medicine display name"),
    month: Optional[str] = Query(None, description="Month name, e.g. 'January'"),
    weather: Optional[schemas.Weather] = Query(None, description="Omit for a season-only estimate"),
    x_owner_id: Optional[str] = Header(None),
    store: ForecastRecordStore = Depends(get_record_store),
) -> schemas.DemandEstimate:
    """Return units and revenue for a medicine in a month (and weather scenario)."""

    LOGGER.info("Estimate request medicine=%s month=%s weather=%s", medicine, month, weather)
    estimate = _run("estimate", medicine, lambda: _forecast_service.estimate(medicine, month, weather))
    if x_owner_id:
        background_tasks.add_task(_persist_record, store, estimate_record(estimate, x_owner_id))
    return estimate


@router.get("/forecasts/weather-comparison", response_model=List[schemas.DemandEstimate])
def get_weather_comparison(
    medicine: Optional[str] = Query(None),
    month: Optional[str] = Query(None),
) -> List[schemas.DemandEstimate]:
    """Return one estimate per weather condition for the same medicine and month."""

    return _run(
        "weather_comparison",
        medicine,
        lambda: _forecast_service.weather_comparison(medicine, month),
    )


@router.get("/forecasts/seasonal-profile", response_model=List[schemas.DemandEstimate])
def get_seasonal_profile(medicine: Optional[str] = Query(None)) -> List[schemas.DemandEstimate]:
    """Return the season-only estimate for each month of the year."""

    return _run("seasonal_profile", medicine, lambda: _forecast_service.seasonal_profile(medicine))


@router.get("/forecasts/range", response_model=schemas.ForecastResponse)
def get_range_forecast(
    background_tasks: BackgroundTasks,
    medicine: Optional[str] = Query(None),
    start_month: Optional[str] = Query(None, description="Defaults to the current month"),
    x_owner_id: Optional[str] = Header(None),
    store: ForecastRecordStore = Depends(get_record_store),
) -> schemas.ForecastResponse:
    """Return the best/average/worst case projection for the next 12 months."""

    LOGGER.info("Range forecast request medicine=%s start_month=%s", medicine, start_month)
    forecast = _run(
        "range",
        medicine,
        lambda: _forecast_service.forecast_12_months(medicine, start_month),
    )
    if x_owner_id:
        background_tasks.add_task(_persist_record, store, forecast.summary_record(x_owner_id))
    return forecast
