r"""backend\app\api\v1\records.py

Read access to the forecast summaries stored for a user."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from ...models import schemas
from ...services.record_store import ForecastRecordStore, get_record_store

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.get("/records", response_model=List[schemas.ForecastRecord])
def list_records(
    limit: Optional[int] = Query(None, ge=1, le=500),
    x_owner_id: Optional[str] = Header(None),
    store: ForecastRecordStore = Depends(get_record_store),
) -> List[schemas.ForecastRecord]:
    """Return the caller's stored forecasts, newest first."""

    if not x_owner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "missing_owner", "message": "X-Owner-Id header is required."},
        )
    return store.list_forecast_records(x_owner_id, limit=limit)
