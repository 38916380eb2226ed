"""API endpoints for reading and updating the settings YAML file."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Literal, Optional

import yaml
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, model_validator

LOGGER = logging.getLogger(__name__)

router = APIRouter()

CONFIG_DIR = os.getenv("CONFIG_DIR", "configs")
SETTINGS_PATH = os.path.join(CONFIG_DIR, "settings.yaml")

# Flat update field -> (section, key) in settings.yaml; a section of None is top level.
_FIELD_PATHS: Dict[str, tuple[Optional[str], str]] = {
    "base_units": (None, "base_units"),
    "pricing_mode": ("pricing", "mode"),
    "fixed_unit_price": ("pricing", "fixed_unit_price"),
    "min_unit_price": ("pricing", "min_unit_price"),
    "max_unit_price": ("pricing", "max_unit_price"),
    "horizon_days": ("risk", "horizon_days"),
    "daily_base_demand": ("risk", "daily_base_demand"),
    "history_years": ("analytics", "years"),
    "moving_average_window": ("analytics", "moving_average_window"),
}


def _load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _safe_write_yaml(path: str, payload: Dict[str, Any]) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(
        prefix=".tmp-", suffix=".yaml", dir=directory
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)
        shutil.move(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


class SettingsUpdate(BaseModel):
    base_units: Optional[int] = Field(None, gt=0)
    pricing_mode: Optional[Literal["fixed", "randomized"]] = None
    fixed_unit_price: Optional[float] = Field(None, gt=0.0)
    min_unit_price: Optional[float] = Field(None, gt=0.0)
    max_unit_price: Optional[float] = Field(None, gt=0.0)
    horizon_days: Optional[int] = Field(None, ge=1, le=365)
    daily_base_demand: Optional[float] = Field(None, gt=0.0)
    history_years: Optional[int] = Field(None, ge=1, le=10)
    moving_average_window: Optional[int] = Field(None, ge=1, le=12)

    @model_validator(mode="after")
    def _check_price_band(self) -> "SettingsUpdate":
        if (
            self.min_unit_price is not None
            and self.max_unit_price is not None
            and self.min_unit_price >= self.max_unit_price
        ):
            raise ValueError("min_unit_price must be below max_unit_price")
        return self


def _merge_updates(original: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    result = {key: (dict(value) if isinstance(value, dict) else value) for key, value in original.items()}
    for field, value in updates.items():
        if value is None:
            continue
        section, key = _FIELD_PATHS[field]
        if section is None:
            result[key] = value
        else:
            nested = result.get(section)
            if not isinstance(nested, dict):
                nested = {}
            nested[key] = value
            result[section] = nested
    return result


@router.get("/configs/settings")
def get_settings() -> Dict[str, Any]:
    try:
        return _load_yaml(SETTINGS_PATH)
    except FileNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "not_found",
                "message": "settings.yaml not found",
            },
        ) from exc


@router.put("/configs/settings")
def put_settings(body: SettingsUpdate) -> Dict[str, Any]:
    """Merge ``body`` into settings.yaml; services pick the values up on restart."""

    try:
        current = _load_yaml(SETTINGS_PATH)
    except FileNotFoundError:
        current = {}

    updated = _merge_updates(current, body.model_dump(exclude_none=True))
    if updated == current:
        return current

    try:
        _safe_write_yaml(SETTINGS_PATH, updated)
    except OSError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "write_failed", "message": str(exc)},
        ) from exc
    LOGGER.info("settings.yaml updated fields=%s", sorted(body.model_dump(exclude_none=True)))
    return updated
