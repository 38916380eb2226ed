r"""backend\app\services\analytics_service.py

Time-series analytics over synthesised monthly sales history.

History is generated rather than loaded: a trend that compounds 2% per month
is multiplied by the medicine's seasonal pattern and by uniform noise in
[0.9, 1.1).  Each call produces fresh noise, so two histories for the same
medicine agree in shape but not in exact values.

The analytics themselves (moving average, IQR anomaly flags, year-over-year
comparison) are deterministic functions of a history and are kept at module
level for direct testing.
"""

from __future__ import annotations

import logging
import math
import os
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.config import load_yaml, settings_section
from ..models.schemas import (
    AnalyticsReport,
    AnomalyPoint,
    HistoricalPoint,
    HistorySummary,
    LowSellingProduct,
    Month,
    YearOverYearRow,
)
from .catalog_service import CatalogService
from .numeric import growth_pct, round_half_up
from .validation_service import require_selection

LOGGER = logging.getLogger(__name__)

DEFAULT_YEARS = 3
DEFAULT_WINDOW = 3
DEFAULT_HISTORY_BASE_UNITS = 1000.0
DEFAULT_TREND_GROWTH = 1.02
NOISE_RANGE = (0.9, 1.1)
PRICE_RANGE = (150.0, 200.0)
IQR_FENCE = 1.5


class InvalidYearError(ValueError):
    """Raised when a requested comparison year is not part of the history."""


# ---------------------------------------------------------------------------
# Series helpers


def history_frame(series: Sequence[HistoricalPoint]) -> pd.DataFrame:
    """Return ``series`` as a ``pd.DataFrame`` with one row per month."""

    columns = list(HistoricalPoint.model_fields)
    return pd.DataFrame([point.model_dump() for point in series], columns=columns)


def moving_average(series: Sequence[HistoricalPoint], window: int = DEFAULT_WINDOW) -> List[Optional[int]]:
    """Trailing moving average of ``units``.

    The first ``window - 1`` positions have no complete window and are
    ``None``; the rest are the rounded mean of the trailing ``window`` values.
    """

    if window <= 0:
        raise ValueError("window must be a positive integer")
    units = pd.Series([point.units for point in series], dtype="float64")
    sums = units.rolling(window=window, min_periods=window).sum()
    return [None if pd.isna(total) else round_half_up(total / window) for total in sums]


def with_moving_average(series: Sequence[HistoricalPoint], window: int = DEFAULT_WINDOW) -> List[HistoricalPoint]:
    averages = moving_average(series, window)
    return [point.model_copy(update={"moving_avg": avg}) for point, avg in zip(series, averages)]


def iqr_bounds(values: Sequence[float]) -> tuple[float, float]:
    """Return Tukey fences using nearest-rank quartiles."""

    ordered = np.sort(np.asarray(values, dtype=float))
    n = len(ordered)
    q1 = float(ordered[math.floor(n * 0.25)])
    q3 = float(ordered[math.floor(n * 0.75)])
    iqr = q3 - q1
    return q1 - IQR_FENCE * iqr, q3 + IQR_FENCE * iqr


def detect_anomalies(series: Sequence[HistoricalPoint]) -> List[AnomalyPoint]:
    """Flag points whose units fall strictly outside the IQR fences."""

    if not series:
        return []
    lower, upper = iqr_bounds([point.units for point in series])

    flagged: List[AnomalyPoint] = []
    for point in series:
        anomaly_type = None
        if point.units < lower:
            anomaly_type = "low"
        elif point.units > upper:
            anomaly_type = "high"
        flagged.append(
            AnomalyPoint(
                period=point.period,
                units=point.units,
                is_anomaly=anomaly_type is not None,
                anomaly_type=anomaly_type,
                lower_bound=round_half_up(lower),
                upper_bound=round_half_up(upper),
            )
        )
    return flagged


def year_over_year(series: Sequence[HistoricalPoint], year1: int, year2: int) -> List[YearOverYearRow]:
    """Pair same-month points of ``year1`` and ``year2`` and compute growth."""

    first = [point for point in series if point.year == year1]
    second = {point.month_index: point for point in series if point.year == year2}

    rows: List[YearOverYearRow] = []
    for point in first:
        match = second.get(point.month_index)
        growth = round_half_up(growth_pct(point.units, match.units)) if match is not None else 0
        rows.append(
            YearOverYearRow(
                month=point.month,
                year1_units=point.units,
                year2_units=match.units if match is not None else 0,
                year1_revenue=point.revenue,
                year2_revenue=match.revenue if match is not None else 0.0,
                growth_pct=growth,
            )
        )
    return rows


def resolve_years(
    series: Sequence[HistoricalPoint],
    year1: Optional[int] = None,
    year2: Optional[int] = None,
) -> Optional[Tuple[int, int]]:
    """Pick the pair of years to compare, defaulting to the last two in ``series``.

    Returns ``None`` when no years are requested and the history spans a
    single year.  Requested years outside the history raise ``InvalidYearError``.
    """

    years = sorted({point.year for point in series})
    if not years:
        return None
    if year1 is None and year2 is None and len(years) < 2:
        return None

    first = year1 if year1 is not None else years[-2] if len(years) > 1 else years[0]
    second = year2 if year2 is not None else years[-1]
    for year in (first, second):
        if year not in years:
            raise InvalidYearError(f"Year {year} is outside the history ({years[0]}-{years[-1]}).")
    return first, second


def summarize_history(series: Sequence[HistoricalPoint]) -> HistorySummary:
    """Headline figures: last 12 months against the 12 before them."""

    recent = series[-12:]
    previous = series[-24:-12]
    recent_total = sum(point.units for point in recent)
    previous_total = sum(point.units for point in previous)
    return HistorySummary(
        total_units=recent_total,
        avg_units=round_half_up(recent_total / len(recent)) if recent else 0,
        yoy_growth=round(growth_pct(previous_total, recent_total), 1),
        anomaly_count=sum(1 for point in detect_anomalies(series) if point.is_anomaly),
    )


# ---------------------------------------------------------------------------
# Core service implementation


class AnalyticsService:
    """Synthesise sales history per medicine and run descriptive analytics."""

    def __init__(
        self,
        config_root: str | None = None,
        catalog: CatalogService | None = None,
        rng: np.random.Generator | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.config_root = config_root or os.getenv("CONFIG_DIR", "configs")
        self.catalog = catalog or CatalogService()
        self._rng = rng if rng is not None else np.random.default_rng()
        self._today = today or date.today

        settings = load_yaml(os.path.join(self.config_root, "settings.yaml"))
        analytics = settings_section(settings, "analytics")
        self.years = int(analytics.get("years", DEFAULT_YEARS))
        self.window = int(analytics.get("moving_average_window", DEFAULT_WINDOW))
        self.history_base_units = float(analytics.get("base_units", DEFAULT_HISTORY_BASE_UNITS))
        self.trend_growth = float(analytics.get("trend_growth", DEFAULT_TREND_GROWTH))
        self._low_selling = settings_section(settings, "low_selling")

    # ------------------------------------------------------------------
    def default_start_year(self, years: int) -> int:
        return self._today().year - years

    def synthesize_history(
        self,
        medicine: Optional[str],
        years: Optional[int] = None,
        start_year: Optional[int] = None,
    ) -> List[HistoricalPoint]:
        """Generate ``years * 12`` monthly points, oldest first."""

        require_selection(medicine=medicine)
        assert medicine is not None
        years = int(years or self.years)
        if years <= 0:
            raise ValueError("years must be a positive integer")
        first_year = start_year if start_year is not None else self.default_start_year(years)

        entry = self.catalog.get_entry(medicine)
        trend_value = self.history_base_units * entry.base_multiplier

        points: List[HistoricalPoint] = []
        for year in range(first_year, first_year + years):
            for month in Month:
                seasonal_factor = entry.seasonal_pattern[month.index]
                expected = trend_value * seasonal_factor
                noise = float(self._rng.uniform(*NOISE_RANGE))
                units = max(round_half_up(expected * noise), 0)
                price = float(self._rng.uniform(*PRICE_RANGE))
                points.append(
                    HistoricalPoint(
                        period=f"{month.short} {year}",
                        month=month.short,
                        month_index=month.index,
                        year=year,
                        units=units,
                        revenue=float(round_half_up(units * price)),
                        trend=round_half_up(trend_value),
                        seasonal=round_half_up(expected),
                        residual=round_half_up(units - expected),
                    )
                )
                trend_value *= self.trend_growth

        LOGGER.debug("Synthesised %d history points for %s", len(points), medicine)
        return points

    def history_with_moving_average(self, medicine: Optional[str]) -> List[HistoricalPoint]:
        return with_moving_average(self.synthesize_history(medicine), self.window)

    def analyze(
        self,
        medicine: Optional[str],
        year1: Optional[int] = None,
        year2: Optional[int] = None,
    ) -> AnalyticsReport:
        """Synthesise one history and derive every analytic from that series."""

        series = self.synthesize_history(medicine)
        years = resolve_years(series, year1, year2)
        assert medicine is not None
        return AnalyticsReport(
            medicine=medicine,
            history=with_moving_average(series, self.window),
            anomalies=detect_anomalies(series),
            year1=years[0] if years else None,
            year2=years[1] if years else None,
            year_over_year=year_over_year(series, *years) if years else [],
            summary=summarize_history(series),
        )

    # ------------------------------------------------------------------
    def low_selling_products(self, medicines: Optional[Sequence[str]] = None) -> List[LowSellingProduct]:
        """Medicines whose nominal revenue falls inside the configured band, cheapest first."""

        base_units = float(self._low_selling.get("base_units", 100))
        unit_price = float(self._low_selling.get("unit_price", 50.0))
        min_revenue = float(self._low_selling.get("min_revenue", 1000.0))
        max_revenue = float(self._low_selling.get("max_revenue", 2000.0))

        names = list(medicines) if medicines is not None else self.catalog.medicines
        products = []
        for name in names:
            entry = self.catalog.get_entry(name)
            revenue = unit_price * base_units * entry.base_multiplier
            if min_revenue <= revenue <= max_revenue:
                products.append(
                    LowSellingProduct(
                        medicine=name,
                        revenue=revenue,
                        multiplier=entry.base_multiplier,
                        category=entry.category,
                    )
                )
        products.sort(key=lambda product: product.revenue)
        return products


def category_breakdown(products: Sequence[LowSellingProduct]) -> List[Dict[str, object]]:
    """Count and average revenue of ``products`` per category."""

    if not products:
        return []
    frame = pd.DataFrame([product.model_dump() for product in products])
    grouped = frame.groupby("category", sort=False)["revenue"].agg(["count", "mean"])
    return [
        {"category": str(category), "count": int(row["count"]), "avg_revenue": round_half_up(row["mean"])}
        for category, row in grouped.iterrows()
    ]
