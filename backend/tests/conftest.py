from __future__ import annotations

from collections import defaultdict, deque
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))


@pytest.fixture(autouse=True)
def _no_rate_limit(monkeypatch):
    """API tests share one client IP; only the rate-limit test turns the limiter on."""

    from backend.app.core import observability as obs

    monkeypatch.setattr(obs.RequestMetricsMiddleware, "_per_minute", 0)
    monkeypatch.setattr(obs.RequestMetricsMiddleware, "_buckets", defaultdict(deque))
