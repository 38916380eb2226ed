r"""backend\app\api\v1\catalog.py"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from ...models import schemas
from ...services.catalog_service import CatalogService

LOGGER = logging.getLogger(__name__)
router = APIRouter()

_catalog = CatalogService()


def _error(code: str, message: str) -> dict[str, str]:
    return {"error": code, "message": message}


@router.get("/catalog/medicines")
def get_medicines(category: Optional[str] = Query(None)) -> Dict[str, List[str]]:
    """Return catalogue medicine names, optionally restricted to one category."""

    if category is None:
        return {"medicines": _catalog.medicines}
    names = _catalog.medicines_in(category)
    if not names:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error("category_not_found", f"Category '{category}' has no medicines."),
        )
    return {"medicines": names}


@router.get("/catalog/categories")
def get_categories() -> Dict[str, Dict[str, List[str]]]:
    return {"categories": _catalog.categories()}


@router.get("/catalog/medicines/{name}", response_model=schemas.MedicineInfo)
def get_medicine(name: str) -> schemas.MedicineInfo:
    """Return the classification for ``name``.

    Unknown names are not an error: they resolve to the fallback entry with a
    flat seasonal pattern and the standard multiplier.
    """

    if not _catalog.has_medicine(name):
        LOGGER.info("Medicine %s not in catalogue; returning fallback classification", name)
    return _catalog.get_entry(name).to_info()
