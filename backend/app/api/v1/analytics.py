"""Routes for historical time-series analytics."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import numpy as np
from fastapi import APIRouter, HTTPException, Query, status

from ...core.config import get_settings
from ...models import schemas
from ...services import analytics_service as analytics
from ...services.analytics_service import AnalyticsService, InvalidYearError

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_analytics_service = AnalyticsService(
    config_root=os.getenv("CONFIG_DIR", "configs"),
    rng=np.random.default_rng(get_settings().random_seed),
)


def _error_payload(code: str, message: str) -> dict[str, str]:
    return {"error": code, "message": message}


@router.get("/analytics/low-selling")
def get_low_selling() -> Dict[str, Any]:
    """Return medicines inside the configured low revenue band with a category breakdown."""

    products = _analytics_service.low_selling_products()
    return {
        "products": [product.model_dump() for product in products],
        "categories": analytics.category_breakdown(products),
    }


@router.get("/analytics/{medicine}", response_model=schemas.AnalyticsReport)
def get_analytics(
    medicine: str,
    year1: Optional[int] = Query(None, description="First comparison year"),
    year2: Optional[int] = Query(None, description="Second comparison year"),
) -> schemas.AnalyticsReport:
    """Return history, anomalies, year-over-year and summary for one fresh history.

    Every section is derived from the same synthesised series; a new request
    draws a new series.
    """

    try:
        return _analytics_service.analyze(medicine, year1, year2)
    except InvalidYearError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_year", str(exc)),
        ) from exc
