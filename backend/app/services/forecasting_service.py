r"""backend\app\services\forecasting_service.py

Seasonal and weather driven demand forecasting for the medicine catalogue.

Demand for a single selection is the product of four factors::

    units   = round(base_units * base_multiplier * seasonal_factor * weather_factor)
    revenue = round(units * unit_price)

``base_multiplier`` and ``seasonal_factor`` come from the catalogue rule
tables, ``weather_factor`` from the weather sensitivity table (1.0 when the
estimate is season-only).  The unit price is supplied by a ``PriceModel``
which is either fixed or randomised per draw; the mode is configured in
``configs/settings.yaml`` under ``pricing.mode``.

The 12-month projection applies the same estimator to every month starting at
the current one and brackets it with the most and least favourable weather
condition for the medicine.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import load_yaml, settings_section
from ..models.schemas import (
    DemandEstimate,
    ForecastPoint,
    ForecastRecordCreate,
    ForecastResponse,
    Month,
    Weather,
)
from .catalog_service import CatalogService, weather_factor
from .numeric import round_half_up
from .validation_service import PRICING_MODES, parse_month, parse_weather, require_selection

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_UNITS = 250
DEFAULT_UNIT_PRICE = 50.0
DEFAULT_MIN_UNIT_PRICE = 50.0
DEFAULT_MAX_UNIT_PRICE = 80.0

RANGE_RECORD_LABEL = "Future-12M-Range"


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def months_from(start: Month) -> List[Month]:
    """Return the 12 months starting at ``start`` and wrapping around December."""

    return [Month.from_index(start.index + offset) for offset in range(12)]


def estimate_units(
    base_units: float,
    multiplier: float,
    seasonal_factor: float,
    weather_factor_value: float = 1.0,
) -> int:
    units = round_half_up(base_units * multiplier * seasonal_factor * weather_factor_value)
    return max(units, 0)


def revenue_for(units: int, unit_price: float) -> float:
    return float(max(round_half_up(units * unit_price), 0))


@dataclass
class PriceModel:
    """Unit price source for revenue figures.

    ``fixed`` always returns ``fixed_price``; ``randomized`` draws uniformly
    from ``[min_price, max_price)`` on every call.
    """

    mode: str = "fixed"
    fixed_price: float = DEFAULT_UNIT_PRICE
    min_price: float = DEFAULT_MIN_UNIT_PRICE
    max_price: float = DEFAULT_MAX_UNIT_PRICE
    rng: Optional[np.random.Generator] = None

    def __post_init__(self) -> None:
        if self.mode not in PRICING_MODES:
            raise ValueError(f"pricing mode must be one of {PRICING_MODES}, got {self.mode!r}")
        if self.max_price < self.min_price:
            raise ValueError("max_price must not be lower than min_price")
        if self.rng is None:
            self.rng = np.random.default_rng()

    @property
    def is_randomized(self) -> bool:
        return self.mode == "randomized"

    def unit_price(self) -> float:
        if not self.is_randomized:
            return float(self.fixed_price)
        return float(self.rng.uniform(self.min_price, self.max_price))


# ---------------------------------------------------------------------------
# Result container


class RangeForecast(ForecastResponse):
    """12-month range forecast with a pandas view and a persistable summary."""

    @property
    def frame(self) -> pd.DataFrame:
        return pd.DataFrame([point.model_dump(mode="json") for point in self.forecast])

    def summary_record(self, owner_id: str) -> ForecastRecordCreate:
        return ForecastRecordCreate(
            owner_id=owner_id,
            medicine=self.medicine,
            weather=RANGE_RECORD_LABEL,
            month="Next 12 Months",
            forecast_units=self.total_avg_case,
            revenue=self.total_avg_case_revenue,
            prediction_period="12 Months",
        )


def estimate_record(estimate: DemandEstimate, owner_id: str) -> ForecastRecordCreate:
    """Build the persisted summary row for a single estimate."""

    if estimate.weather is not None:
        label, period = estimate.weather.value, "Current Weather"
    else:
        label, period = estimate.season.value, "Seasonal"
    return ForecastRecordCreate(
        owner_id=owner_id,
        medicine=estimate.medicine,
        weather=label,
        month=estimate.month.value,
        forecast_units=estimate.units,
        revenue=estimate.revenue,
        prediction_period=period,
    )


# ---------------------------------------------------------------------------
# Core service implementation


class DemandEstimator:
    """Point estimate of units and revenue for one selection."""

    def __init__(
        self,
        catalog: CatalogService,
        price_model: PriceModel,
        base_units: float = DEFAULT_BASE_UNITS,
    ) -> None:
        if base_units <= 0:
            raise ValueError("base_units must be positive")
        self.catalog = catalog
        self.price_model = price_model
        self.base_units = float(base_units)

    def estimate(
        self,
        medicine: Optional[str],
        month: Month | str | int | None,
        weather: Weather | str | None = None,
    ) -> DemandEstimate:
        require_selection(medicine=medicine, month=month)
        assert medicine is not None and month is not None
        selected_month = parse_month(month)
        condition = parse_weather(weather)

        entry = self.catalog.get_entry(medicine)
        seasonal_factor = entry.seasonal_pattern[selected_month.index]
        factor = weather_factor(condition, medicine) if condition is not None else 1.0

        units = estimate_units(self.base_units, entry.base_multiplier, seasonal_factor, factor)
        unit_price = self.price_model.unit_price()
        return DemandEstimate(
            medicine=medicine,
            month=selected_month,
            season=selected_month.season,
            weather=condition,
            seasonal_factor=seasonal_factor,
            weather_factor=factor,
            base_multiplier=entry.base_multiplier,
            units=units,
            unit_price=unit_price,
            revenue=revenue_for(units, unit_price),
        )


class ForecastingService:
    """Estimate medicine demand and project it over the coming 12 months."""

    def __init__(
        self,
        config_root: str | None = None,
        catalog: CatalogService | None = None,
        pricing_mode: str | None = None,
        rng: np.random.Generator | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.config_root = config_root or os.getenv("CONFIG_DIR", "configs")
        self.catalog = catalog or CatalogService()
        self._today = today or date.today

        settings = load_yaml(os.path.join(self.config_root, "settings.yaml"))
        pricing = settings_section(settings, "pricing")
        self.price_model = PriceModel(
            mode=str(pricing_mode or pricing.get("mode", "fixed")),
            fixed_price=float(pricing.get("fixed_unit_price", DEFAULT_UNIT_PRICE)),
            min_price=float(pricing.get("min_unit_price", DEFAULT_MIN_UNIT_PRICE)),
            max_price=float(pricing.get("max_unit_price", DEFAULT_MAX_UNIT_PRICE)),
            rng=rng,
        )
        self.estimator = DemandEstimator(
            self.catalog,
            self.price_model,
            base_units=float(settings.get("base_units", DEFAULT_BASE_UNITS)),
        )
        LOGGER.debug(
            "ForecastingService configured base_units=%s pricing=%s",
            self.estimator.base_units,
            self.price_model.mode,
        )

    # ------------------------------------------------------------------
    def current_month(self) -> Month:
        return Month.from_index(self._today().month - 1)

    def estimate(
        self,
        medicine: Optional[str],
        month: Month | str | int | None,
        weather: Weather | str | None = None,
    ) -> DemandEstimate:
        """Return units/revenue for a medicine in a month, optionally under a weather scenario."""

        result = self.estimator.estimate(medicine, month, weather)
        LOGGER.info(
            "Estimate medicine=%s month=%s weather=%s units=%s",
            result.medicine,
            result.month.value,
            result.weather.value if result.weather else "season-only",
            result.units,
        )
        return result

    def weather_comparison(self, medicine: Optional[str], month: Month | str | int | None) -> List[DemandEstimate]:
        """One estimate per weather condition for the same medicine and month."""

        return [self.estimator.estimate(medicine, month, weather) for weather in Weather]

    def seasonal_profile(self, medicine: Optional[str]) -> List[DemandEstimate]:
        """Season-only estimates for January through December."""

        require_selection(medicine=medicine)
        return [self.estimator.estimate(medicine, month) for month in Month]

    # ------------------------------------------------------------------
    def _range_point(self, medicine: str, month: Month, factors: Sequence[float]) -> ForecastPoint:
        entry = self.catalog.get_entry(medicine)
        seasonal_factor = entry.seasonal_pattern[month.index]
        base_units = self.estimator.base_units

        best = estimate_units(base_units, entry.base_multiplier, seasonal_factor, max(factors))
        worst = estimate_units(base_units, entry.base_multiplier, seasonal_factor, min(factors))
        avg = round_half_up((best + worst) / 2)
        unit_price = self.price_model.unit_price()

        return ForecastPoint(
            period=month.short,
            month=month,
            month_index=month.index,
            season=month.season,
            best_case_units=best,
            worst_case_units=worst,
            avg_case_units=avg,
            range_units=best - worst,
            unit_price=unit_price,
            best_case_revenue=revenue_for(best, unit_price),
            worst_case_revenue=revenue_for(worst, unit_price),
            avg_case_revenue=revenue_for(avg, unit_price),
        )

    def forecast_12_months(
        self,
        medicine: Optional[str],
        start_month: Month | str | int | None = None,
    ) -> RangeForecast:
        """Return the best/average/worst case projection for the next 12 months."""

        require_selection(medicine=medicine)
        assert medicine is not None
        start = parse_month(start_month) if start_month is not None else self.current_month()

        factors = [weather_factor(weather, medicine) for weather in Weather]
        points = [self._range_point(medicine, month, factors) for month in months_from(start)]

        LOGGER.info(
            "12-month forecast medicine=%s start=%s weather_factors=%s", medicine, start.value, factors
        )
        return RangeForecast(
            medicine=medicine,
            start_month=start,
            forecast=points,
            total_best_case=sum(point.best_case_units for point in points),
            total_avg_case=sum(point.avg_case_units for point in points),
            total_worst_case=sum(point.worst_case_units for point in points),
            total_best_case_revenue=sum(point.best_case_revenue for point in points),
            total_avg_case_revenue=sum(point.avg_case_revenue for point in points),
            total_worst_case_revenue=sum(point.worst_case_revenue for point in points),
        )
