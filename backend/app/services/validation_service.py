r"""backend\app\services\validation_service.py"""

from __future__ import annotations

import os
from typing import Any, Optional

from ..core.config import load_yaml, settings_section
from ..models.schemas import Month, Weather
from .catalog_service import (
    DEFAULT_CATEGORY,
    MEDICINE_CATEGORIES,
    SEASONAL_PATTERNS,
    VOLUME_MULTIPLIERS,
    CatalogService,
)

PRICING_MODES = ("fixed", "randomized")


class InvalidSelectionError(ValueError):
    """Raised when a required selection (medicine, month, weather) is missing or unknown."""


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_selection(**fields: Any) -> None:
    """Raise ``InvalidSelectionError`` naming every missing field."""

    missing = [name for name, value in fields.items() if _is_blank(value)]
    if missing:
        raise InvalidSelectionError(f"Please select {' and '.join(missing)}.")


def parse_month(value: Month | str | int) -> Month:
    """Accept a ``Month``, a full or three-letter name, or a 0-11 index.

    Indexes may arrive as digit strings (``"0"``) from query parameters.
    """

    if isinstance(value, Month):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= 11:
            return Month.from_index(value)
        raise InvalidSelectionError(f"Month index must be between 0 and 11, got {value}.")
    text = str(value).strip().lower()
    for month in Month:
        if text in (month.value.lower(), month.short.lower()):
            return month
    raise InvalidSelectionError(f"Unknown month '{value}'.")


def parse_weather(value: Optional[Weather | str]) -> Optional[Weather]:
    """Return ``None`` for the season-only mode, otherwise a ``Weather``."""

    if _is_blank(value):
        return None
    if isinstance(value, Weather):
        return value
    text = str(value).strip().lower()
    for weather in Weather:
        if text == weather.value.lower():
            return weather
    raise InvalidSelectionError(
        f"Unknown weather condition '{value}'. Expected one of: "
        + ", ".join(weather.value for weather in Weather)
    )


class ValidationService:
    def __init__(self, config_root: str | None = None, catalog: CatalogService | None = None):
        self.config_root = config_root or os.getenv("CONFIG_DIR", "configs")
        self.catalog = catalog or CatalogService()

    def run(self) -> dict:
        checks = []

        def add(name: str, ok: bool, msg: str = "") -> None:
            checks.append({"name": name, "ok": bool(ok), "message": msg})

        settings_path = os.path.join(self.config_root, "settings.yaml")
        add("file_settings_exists", os.path.exists(settings_path), settings_path)

        settings = load_yaml(settings_path)
        mode = settings_section(settings, "pricing").get("mode", "fixed")
        add("pricing_mode_ok", mode in PRICING_MODES, f"mode: {mode}")

        bad_patterns = [
            group
            for group, pattern in SEASONAL_PATTERNS.items()
            if len(pattern) != 12 or any(factor <= 0 for factor in pattern)
        ]
        add("seasonal_patterns_ok", not bad_patterns, f"invalid: {bad_patterns}")

        bad_tiers = [tier for tier, value in VOLUME_MULTIPLIERS.items() if value <= 0]
        add("volume_multipliers_ok", not bad_tiers, f"invalid: {bad_tiers}")

        filed = [name for names in MEDICINE_CATEGORIES.values() for name in names]
        duplicates = sorted({name for name in filed if filed.count(name) > 1})
        uncategorised = [
            name
            for name in self.catalog.medicines
            if self.catalog.get_entry(name).category == DEFAULT_CATEGORY
        ]
        add(
            "catalog_categories_ok",
            not duplicates,
            f"{len(self.catalog.medicines)} medicines, {len(uncategorised)} uncategorised, "
            f"duplicates: {duplicates}",
        )

        overall = all(x["ok"] for x in checks)
        return {"ok": overall, "checks": checks}
