r"""backend/tests/test_rate_limit.py"""

from __future__ import annotations

import sys
from collections import defaultdict, deque
from pathlib import Path

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.main import app  # noqa: E402


def test_rate_limit(monkeypatch):
    from backend.app.core import observability as obs

    monkeypatch.setattr(obs.RequestMetricsMiddleware, "_per_minute", 1, raising=False)
    monkeypatch.setattr(
        obs.RequestMetricsMiddleware,
        "_buckets",
        defaultdict(deque),
        raising=False,
    )

    client = TestClient(app)

    first = client.get("/api/v1/data/validate")
    assert first.status_code != 429

    limited = client.get("/api/v1/data/validate")
    assert limited.status_code == 429
    assert limited.headers["x-request-id"]

    # health checks are exempt
    assert client.get("/api/v1/health").status_code == 200


def test_request_id_is_echoed():
    client = TestClient(app)

    response = client.get("/api/v1/health", headers={"x-request-id": "abc-123"})

    assert response.headers["x-request-id"] == "abc-123"


def test_medicine_is_extracted_for_request_logs():
    from starlette.requests import Request

    from backend.app.core.observability import _medicine_from_request

    def _request(path: str, query: bytes = b"") -> Request:
        return Request({"type": "http", "method": "GET", "path": path, "query_string": query, "headers": []})

    assert _medicine_from_request(_request("/api/v1/risk/Dolo%20650")) == "Dolo 650"
    assert _medicine_from_request(_request("/api/v1/forecasts/range", b"medicine=Crocin")) == "Crocin"
    assert _medicine_from_request(_request("/api/v1/stock/cache/clear")) is None
    assert _medicine_from_request(_request("/api/v1/health")) is None
