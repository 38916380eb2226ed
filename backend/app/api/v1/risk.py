"""Routes for simulated stock levels and stock-out risk."""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

import numpy as np
from fastapi import APIRouter, HTTPException, Query, status

from ...core.config import get_settings
from ...models import schemas
from ...services.inventory_service import InventoryService
from ...services.risk_service import RiskService, summarize
from ...services.validation_service import InvalidSelectionError

LOGGER = logging.getLogger(__name__)

router = APIRouter()

MIN_HORIZON_DAYS = 1
MAX_HORIZON_DAYS = 365

_inventory_service = InventoryService(rng=np.random.default_rng(get_settings().random_seed))
_risk_service = RiskService(_inventory_service, config_root=os.getenv("CONFIG_DIR", "configs"))


def _error_payload(code: str, message: str) -> dict[str, str]:
    return {"error": code, "message": message}


@router.get("/risk", response_model=schemas.RiskReport)
def get_risk_report(
    horizon_days: Optional[int] = Query(None, ge=MIN_HORIZON_DAYS, le=MAX_HORIZON_DAYS),
    medicine: Optional[List[str]] = Query(None, description="Restrict to these medicines"),
) -> schemas.RiskReport:
    """Return stock-out risk for the catalogue, highest risk first."""

    try:
        assessments = _risk_service.assess_portfolio(medicine, horizon_days)
    except InvalidSelectionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_selection", str(exc)),
        ) from exc
    return schemas.RiskReport(
        horizon_days=horizon_days or _risk_service.default_horizon_days,
        summary=summarize(assessments),
        assessments=assessments,
    )


@router.get("/risk/{medicine}", response_model=schemas.RiskAssessment)
def get_risk(
    medicine: str,
    horizon_days: Optional[int] = Query(None, ge=MIN_HORIZON_DAYS, le=MAX_HORIZON_DAYS),
) -> schemas.RiskAssessment:
    try:
        return _risk_service.assess(medicine, horizon_days)
    except InvalidSelectionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_selection", str(exc)),
        ) from exc


@router.get("/stock/{medicine}", response_model=schemas.StockInfo)
def get_stock(medicine: str) -> schemas.StockInfo:
    """Return the session-stable stock position for ``medicine``."""

    return _inventory_service.stock_record(medicine).to_info()


@router.post("/stock/cache/clear")
def clear_stock_cache() -> Dict[str, str]:
    """Discard memoised stock levels; the next read draws fresh values."""

    _inventory_service.clear_cache()
    return {"status": "ok"}
