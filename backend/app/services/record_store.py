r"""backend\app\services\record_store.py

Append-only JSONL store for forecast summary records.

Forecast endpoints write one summary row per generated forecast; the export
tooling reads them back per owner, newest first.  Writes are expected to run
in the background, so ``insert_safely`` logs failures instead of raising.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ..core.config import get_settings
from ..models.schemas import ForecastRecord, ForecastRecordCreate

LOGGER = logging.getLogger(__name__)

RECORDS_FILENAME = "forecast_records.jsonl"


class ForecastRecordStore:
    """Persist ``ForecastRecord`` rows as JSON lines under ``data_root``."""

    def __init__(self, data_root: str = "data") -> None:
        self.path = Path(data_root) / RECORDS_FILENAME
        self._lock = threading.Lock()

    def _ensure_storage(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def insert_forecast_record(self, record: ForecastRecordCreate) -> ForecastRecord:
        """Assign identity and timestamp, then append the record."""

        stored = ForecastRecord(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **record.model_dump(),
        )
        line = json.dumps(stored.model_dump(mode="json"), separators=(",", ":"))
        with self._lock:
            self._ensure_storage()
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        return stored

    def insert_safely(self, record: ForecastRecordCreate) -> Optional[ForecastRecord]:
        """Insert ``record`` and log, rather than raise, on failure."""

        try:
            return self.insert_forecast_record(record)
        except Exception:
            LOGGER.exception(
                "Failed to persist forecast record for owner=%s medicine=%s",
                record.owner_id,
                record.medicine,
            )
            return None

    def _read_records(self) -> List[ForecastRecord]:
        if not self.path.exists():
            return []

        records: List[ForecastRecord] = []
        with self.path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(ForecastRecord.model_validate_json(line))
                except ValidationError:
                    LOGGER.warning("Skipping malformed forecast record in %s", self.path)
        return records

    def list_forecast_records(self, owner_id: str, limit: Optional[int] = None) -> List[ForecastRecord]:
        """Return ``owner_id``'s records ordered by ``created_at`` descending."""

        with self._lock:
            records = [record for record in self._read_records() if record.owner_id == owner_id]
        # file order breaks timestamp ties: later lines are newer
        records.reverse()
        records.sort(key=lambda record: record.created_at, reverse=True)
        if limit is not None and limit > 0:
            return records[:limit]
        return records


@lru_cache(maxsize=None)
def get_record_store() -> ForecastRecordStore:
    """Return the process-wide store under ``DATA_DIR``.

    Routers take it through ``Depends(get_record_store)`` so tests can
    substitute a temporary store with ``app.dependency_overrides``.
    """
    return ForecastRecordStore(data_root=get_settings().data_dir)
