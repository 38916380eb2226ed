r"""backend\app\services\inventory_service.py

Simulated stock levels for the medicine catalogue.

There is no inventory system behind this service: the stock on hand for a
medicine is drawn from a tier-dependent range the first time it is requested
and then memoised for the lifetime of the cache, so repeated reads within a
session agree with each other while a new session (or ``clear_cache``)
produces fresh numbers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np

from ..models.schemas import StockInfo
from .catalog_service import STOCK_RANGES, classify
from .numeric import round_half_up

LOGGER = logging.getLogger(__name__)

REORDER_FRACTION = 0.3
MAX_RESTOCK_AGE_DAYS = 30

SUPPLIERS = (
    "MedSupply India",
    "Pharma Distributors Ltd",
    "HealthCare Logistics",
    "Apollo Pharmacy Wholesale",
    "Sun Pharma Direct",
    "Cipla Distribution",
    "Dr. Reddy's Supply Chain",
)


@dataclass(frozen=True)
class StockRecord:
    """Stock position for a single medicine."""

    medicine: str
    current_stock: int
    reorder_level: int
    last_restocked: date
    supplier: str

    def to_info(self) -> StockInfo:
        return StockInfo(
            medicine=self.medicine,
            current_stock=self.current_stock,
            reorder_level=self.reorder_level,
            last_restocked=self.last_restocked,
            supplier=self.supplier,
        )


class StockCache:
    """Thread-safe medicine -> ``StockRecord`` mapping with insert-if-absent writes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, StockRecord] = {}

    def get(self, medicine: str) -> Optional[StockRecord]:
        with self._lock:
            return self._records.get(medicine)

    def get_or_create(self, medicine: str, factory: Callable[[str], StockRecord]) -> StockRecord:
        """Return the cached record, generating it under the lock on a miss.

        The first generated record wins; later callers always observe it.
        """

        with self._lock:
            record = self._records.get(medicine)
            if record is None:
                record = factory(medicine)
                self._records[medicine] = record
            return record

    def snapshot(self) -> Dict[str, StockRecord]:
        with self._lock:
            return dict(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class InventoryService:
    """Provide session-stable simulated stock levels per medicine."""

    def __init__(
        self,
        cache: Optional[StockCache] = None,
        rng: Optional[np.random.Generator] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.cache = cache if cache is not None else StockCache()
        self._rng = rng if rng is not None else np.random.default_rng()
        self._today = today or date.today

    # ------------------------------------------------------------------
    def _draw_stock_level(self, medicine: str) -> int:
        low, high = STOCK_RANGES[classify(medicine).stock_tier]
        return int(self._rng.integers(low, high))

    def _generate(self, medicine: str) -> StockRecord:
        current_stock = self._draw_stock_level(medicine)
        days_ago = int(self._rng.integers(1, MAX_RESTOCK_AGE_DAYS + 1))
        supplier = SUPPLIERS[int(self._rng.integers(0, len(SUPPLIERS)))]
        record = StockRecord(
            medicine=medicine,
            current_stock=current_stock,
            reorder_level=round_half_up(current_stock * REORDER_FRACTION),
            last_restocked=self._today() - timedelta(days=days_ago),
            supplier=supplier,
        )
        LOGGER.debug("Generated stock for %s: %s units", medicine, current_stock)
        return record

    # ------------------------------------------------------------------
    def stock_record(self, medicine: str) -> StockRecord:
        return self.cache.get_or_create(medicine, self._generate)

    def current_stock(self, medicine: str) -> int:
        return self.stock_record(medicine).current_stock

    def stock_snapshot(self, medicines: Iterable[str]) -> List[StockRecord]:
        return [self.stock_record(medicine) for medicine in medicines]

    def clear_cache(self) -> None:
        LOGGER.info("Clearing stock cache (%d entries)", len(self.cache))
        self.cache.clear()
