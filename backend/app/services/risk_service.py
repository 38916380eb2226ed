"""Stock-out risk scoring based on stock cover days."""

from __future__ import annotations

import logging
import os
from collections import Counter
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..core.config import load_yaml, settings_section
from ..models.schemas import Month, RiskAssessment, RiskLevel
from .catalog_service import CatalogService
from .inventory_service import InventoryService
from .numeric import clamp, round_half_up
from .validation_service import require_selection

LOGGER = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 30
DEFAULT_DAILY_BASE_DEMAND = 50.0
NO_DEPLETION_SENTINEL = 999

RISK_LEVELS: Tuple[RiskLevel, ...] = ("critical", "high", "medium", "low")


# ---------------------------------------------------------------------------
def score_risk(cover_days: int) -> Tuple[RiskLevel, float]:
    """Return the risk tier and a 0-100 score for ``cover_days`` of stock.

    Tiers are inclusive on their upper bound: 7 days is critical, 14 high,
    21 medium, anything longer low.
    """

    if cover_days <= 7:
        level: RiskLevel = "critical"
        score = 90 + (7 - cover_days) * 1.5
    elif cover_days <= 14:
        level = "high"
        score = 70 + (14 - cover_days) * 2.5
    elif cover_days <= 21:
        level = "medium"
        score = 40 + (21 - cover_days) * 4
    else:
        level = "low"
        score = max(0.0, 40 - (cover_days - 21) * 2)
    return level, float(clamp(score, 0.0, 100.0))


def stock_cover_days(current_stock: int, forecasted_demand: int, horizon_days: int) -> int:
    daily_demand = forecasted_demand / horizon_days
    if daily_demand <= 0:
        return NO_DEPLETION_SENTINEL
    return round_half_up(current_stock / daily_demand)


def recommendation_for(level: RiskLevel, cover_days: int, shortfall: int, demand: int) -> str:
    if level == "critical":
        order = shortfall + round_half_up(demand * 0.2)
        return (
            f"Urgent reorder needed! Stock will deplete in {cover_days} days. "
            f"Order {order} units immediately."
        )
    if level == "high":
        order = shortfall + round_half_up(demand * 0.15)
        return (
            f"High priority reorder. Stock coverage is only {cover_days} days. "
            f"Recommend ordering {order} units."
        )
    if level == "medium":
        return f"Schedule reorder within the week. Current stock covers {cover_days} days of demand."
    return f"Stock levels adequate. {cover_days} days of coverage. Monitor as usual."


class RiskService:
    """Compare forecasted demand with simulated stock to rank stock-out risk."""

    def __init__(
        self,
        inventory_service: InventoryService,
        catalog: CatalogService | None = None,
        config_root: str | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.inventory_service = inventory_service
        self.catalog = catalog or CatalogService()
        self._today = today or date.today

        config_root = config_root or os.getenv("CONFIG_DIR", "configs")
        risk = settings_section(load_yaml(os.path.join(config_root, "settings.yaml")), "risk")
        self.default_horizon_days = int(risk.get("horizon_days", DEFAULT_HORIZON_DAYS))
        self.daily_base_demand = float(risk.get("daily_base_demand", DEFAULT_DAILY_BASE_DEMAND))

    # ------------------------------------------------------------------
    def forecasted_demand(self, medicine: str, horizon_days: int) -> int:
        entry = self.catalog.get_entry(medicine)
        month = Month.from_index(self._today().month - 1)
        daily_base = self.daily_base_demand * entry.base_multiplier
        seasonal_factor = entry.seasonal_pattern[month.index]
        return max(round_half_up(daily_base * seasonal_factor * horizon_days), 0)

    def assess(self, medicine: Optional[str], horizon_days: Optional[int] = None) -> RiskAssessment:
        require_selection(medicine=medicine)
        assert medicine is not None
        horizon = int(self.default_horizon_days if horizon_days is None else horizon_days)
        if horizon <= 0:
            raise ValueError("horizon_days must be a positive integer")

        current_stock = self.inventory_service.current_stock(medicine)
        demand = self.forecasted_demand(medicine, horizon)
        cover_days = stock_cover_days(current_stock, demand, horizon)
        shortfall = max(0, demand - current_stock)
        level, score = score_risk(cover_days)

        return RiskAssessment(
            medicine=medicine,
            current_stock=current_stock,
            forecasted_demand=demand,
            stock_cover_days=cover_days,
            risk_level=level,
            risk_score=score,
            shortfall_units=shortfall,
            recommendation=recommendation_for(level, cover_days, shortfall, demand),
        )

    def assess_portfolio(
        self,
        medicines: Optional[Iterable[str]] = None,
        horizon_days: Optional[int] = None,
    ) -> List[RiskAssessment]:
        """Assess every medicine and return them highest risk first."""

        names = list(medicines) if medicines is not None else self.catalog.medicines
        assessments = [self.assess(name, horizon_days) for name in names]
        assessments.sort(key=lambda item: item.risk_score, reverse=True)
        LOGGER.info(
            "Assessed stock-out risk for %d medicines horizon=%s",
            len(assessments),
            horizon_days or self.default_horizon_days,
        )
        return assessments


def summarize(assessments: Iterable[RiskAssessment]) -> Dict[str, int]:
    counts = Counter(item.risk_level for item in assessments)
    return {level: counts.get(level, 0) for level in RISK_LEVELS}
