r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as both request payload validators and response
serialisation schemas.  Using typed models ensures that clients and
servers agree on the structure of the data being exchanged.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class Weather(str, Enum):
    """Weather scenarios supported by the short-horizon estimate."""

    HOT = "Hot"
    CLOUDY = "Cloudy"
    RAINY = "Rainy"


class Season(str, Enum):
    WINTER = "Winter"
    SPRING = "Spring"
    SUMMER = "Summer"
    MONSOON = "Monsoon"
    AUTUMN = "Autumn"


class Month(str, Enum):
    """Calendar months; ``index`` is zero based (January = 0)."""

    JANUARY = "January"
    FEBRUARY = "February"
    MARCH = "March"
    APRIL = "April"
    MAY = "May"
    JUNE = "June"
    JULY = "July"
    AUGUST = "August"
    SEPTEMBER = "September"
    OCTOBER = "October"
    NOVEMBER = "November"
    DECEMBER = "December"

    @property
    def index(self) -> int:
        return list(Month).index(self)

    @property
    def short(self) -> str:
        return self.value[:3]

    @property
    def season(self) -> Season:
        return MONTH_SEASONS[self]

    @classmethod
    def from_index(cls, index: int) -> "Month":
        return list(cls)[index % 12]


MONTH_SEASONS: Dict[Month, Season] = {
    Month.JANUARY: Season.WINTER,
    Month.FEBRUARY: Season.WINTER,
    Month.MARCH: Season.SPRING,
    Month.APRIL: Season.SPRING,
    Month.MAY: Season.SUMMER,
    Month.JUNE: Season.SUMMER,
    Month.JULY: Season.MONSOON,
    Month.AUGUST: Season.MONSOON,
    Month.SEPTEMBER: Season.MONSOON,
    Month.OCTOBER: Season.AUTUMN,
    Month.NOVEMBER: Season.AUTUMN,
    Month.DECEMBER: Season.WINTER,
}

RiskLevel = Literal["critical", "high", "medium", "low"]


class MedicineInfo(BaseModel):
    """Catalog entry as exposed to API clients."""

    name: str
    category: str
    seasonal_group: str
    volume_tier: str
    seasonal_pattern: List[float] = Field(..., min_length=12, max_length=12)
    base_multiplier: float
    weather_sensitivity: Dict[str, float]


class StockInfo(BaseModel):
    medicine: str
    current_stock: int = Field(..., ge=0)
    reorder_level: int = Field(..., ge=0)
    last_restocked: date
    supplier: str


class DemandEstimate(BaseModel):
    """Units and revenue for a single (medicine, month, weather) selection."""

    medicine: str
    month: Month
    season: Season
    weather: Optional[Weather] = Field(None, description="None for the season-only estimate")
    seasonal_factor: float
    weather_factor: float
    base_multiplier: float
    units: int = Field(..., ge=0)
    unit_price: float
    revenue: float = Field(..., ge=0)


class ForecastPoint(BaseModel):
    """One month of the 12-month best/worst/average range projection."""

    period: str = Field(..., description="Three-letter month label, e.g. 'Jan'")
    month: Month
    month_index: int = Field(..., ge=0, le=11)
    season: Season
    best_case_units: int = Field(..., ge=0)
    worst_case_units: int = Field(..., ge=0)
    avg_case_units: int = Field(..., ge=0)
    range_units: int = Field(..., ge=0)
    unit_price: float
    best_case_revenue: float = Field(..., ge=0)
    worst_case_revenue: float = Field(..., ge=0)
    avg_case_revenue: float = Field(..., ge=0)


class ForecastResponse(BaseModel):
    """A 12-month range forecast for a given medicine."""

    medicine: str
    start_month: Month
    forecast: List[ForecastPoint]
    total_best_case: int
    total_avg_case: int
    total_worst_case: int
    total_best_case_revenue: float
    total_avg_case_revenue: float
    total_worst_case_revenue: float


class RiskAssessment(BaseModel):
    """Stock-out risk for one medicine over a demand horizon."""

    medicine: str
    current_stock: int = Field(..., ge=0)
    forecasted_demand: int = Field(..., ge=0)
    stock_cover_days: int = Field(..., ge=0, description="999 means no foreseeable depletion")
    risk_level: RiskLevel
    risk_score: float = Field(..., ge=0, le=100)
    shortfall_units: int = Field(..., ge=0)
    recommendation: str


class RiskReport(BaseModel):
    horizon_days: int
    summary: Dict[str, int]
    assessments: List[RiskAssessment]


class HistoricalPoint(BaseModel):
    """One synthesised month of sales history with its decomposition."""

    period: str
    month: str
    month_index: int = Field(..., ge=0, le=11)
    year: int
    units: int = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
    trend: int
    seasonal: int
    residual: int
    moving_avg: Optional[int] = None


class AnomalyPoint(BaseModel):
    period: str
    units: int
    is_anomaly: bool
    anomaly_type: Optional[Literal["low", "high"]] = None
    lower_bound: int
    upper_bound: int


class YearOverYearRow(BaseModel):
    month: str
    year1_units: int
    year2_units: int
    year1_revenue: float
    year2_revenue: float
    growth_pct: int


class HistorySummary(BaseModel):
    total_units: int
    avg_units: int
    yoy_growth: float
    anomaly_count: int


class AnalyticsReport(BaseModel):
    """Every analytic for one medicine, all computed from the same history."""

    medicine: str
    history: List[HistoricalPoint]
    anomalies: List[AnomalyPoint]
    year1: Optional[int] = Field(None, description="None when the history covers a single year")
    year2: Optional[int] = None
    year_over_year: List[YearOverYearRow]
    summary: HistorySummary


class LowSellingProduct(BaseModel):
    medicine: str
    revenue: float
    multiplier: float
    category: str


class ForecastRecordCreate(BaseModel):
    """Fields produced by the engine; the store assigns ``id``/``created_at``."""

    owner_id: str = Field(..., min_length=1)
    medicine: str = Field(..., min_length=1)
    weather: str = Field(..., description="Weather condition, season or range label")
    month: Optional[str] = None
    forecast_units: int = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
    prediction_period: Optional[str] = None


class ForecastRecord(ForecastRecordCreate):
    id: str
    created_at: datetime
