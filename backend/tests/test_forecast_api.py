r"""backend/tests/test_forecast_api.py"""

from __future__ import annotations

import sys
from pathlib import Path

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.main import app  # noqa: E402
from backend.app.services.record_store import ForecastRecordStore, get_record_store  # noqa: E402

CROCIN = "Crocin (Paracetamol)"

client = TestClient(app)


def _fixed_prices(monkeypatch) -> None:
    price_model = "backend.app.api.v1.forecasts._forecast_service.price_model"
    monkeypatch.setattr(f"{price_model}.mode", "fixed")
    monkeypatch.setattr(f"{price_model}.fixed_price", 50.0)


def _temp_store(monkeypatch, tmp_path: Path) -> ForecastRecordStore:
    store = ForecastRecordStore(data_root=str(tmp_path))
    monkeypatch.setitem(app.dependency_overrides, get_record_store, lambda: store)
    return store


def test_estimate_returns_expected_payload(monkeypatch, tmp_path: Path) -> None:
    _fixed_prices(monkeypatch)
    store = _temp_store(monkeypatch, tmp_path)

    response = client.get(
        "/api/v1/forecasts/estimate",
        params={"medicine": CROCIN, "month": "January", "weather": "Hot"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["units"] == 353
    assert payload["revenue"] == 17650.0
    assert payload["season"] == "Winter"
    assert response.headers["x-request-id"]
    # anonymous callers are not recorded
    assert not store.path.exists()


def test_estimate_records_summary_for_owner(monkeypatch, tmp_path: Path) -> None:
    _fixed_prices(monkeypatch)
    store = _temp_store(monkeypatch, tmp_path)

    response = client.get(
        "/api/v1/forecasts/estimate",
        params={"medicine": CROCIN, "month": "January"},
        headers={"X-Owner-Id": "owner-1"},
    )
    assert response.status_code == 200

    records = store.list_forecast_records("owner-1")
    assert len(records) == 1
    assert records[0].forecast_units == 490
    assert records[0].weather == "Winter"
    assert records[0].prediction_period == "Seasonal"

    listed = client.get("/api/v1/records", headers={"X-Owner-Id": "owner-1"})
    assert listed.status_code == 200
    assert [row["forecast_units"] for row in listed.json()] == [490]


def test_record_write_failure_does_not_fail_request(monkeypatch, tmp_path: Path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    blocked_store = ForecastRecordStore(data_root=str(blocker))
    monkeypatch.setitem(app.dependency_overrides, get_record_store, lambda: blocked_store)

    response = client.get(
        "/api/v1/forecasts/estimate",
        params={"medicine": CROCIN, "month": "March"},
        headers={"X-Owner-Id": "owner-1"},
    )

    assert response.status_code == 200


def test_estimate_accepts_month_index() -> None:
    response = client.get(
        "/api/v1/forecasts/estimate",
        params={"medicine": CROCIN, "month": "0"},
    )

    assert response.status_code == 200
    assert response.json()["month"] == "January"

    out_of_range = client.get(
        "/api/v1/forecasts/estimate",
        params={"medicine": CROCIN, "month": "12"},
    )
    assert out_of_range.status_code == 400


def test_estimate_missing_selection_returns_400() -> None:
    response = client.get("/api/v1/forecasts/estimate", params={"medicine": CROCIN})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "invalid_selection"
    assert "month" in detail["message"]


def test_estimate_rejects_unknown_weather() -> None:
    response = client.get(
        "/api/v1/forecasts/estimate",
        params={"medicine": CROCIN, "month": "January", "weather": "Snowy"},
    )

    assert response.status_code == 422


def test_weather_comparison_and_profile() -> None:
    comparison = client.get(
        "/api/v1/forecasts/weather-comparison",
        params={"medicine": CROCIN, "month": "January"},
    )
    assert comparison.status_code == 200
    assert [row["weather"] for row in comparison.json()] == ["Hot", "Cloudy", "Rainy"]

    profile = client.get("/api/v1/forecasts/seasonal-profile", params={"medicine": CROCIN})
    assert profile.status_code == 200
    assert len(profile.json()) == 12


def test_range_forecast_and_summary_record(monkeypatch, tmp_path: Path) -> None:
    _fixed_prices(monkeypatch)
    store = _temp_store(monkeypatch, tmp_path)

    response = client.get(
        "/api/v1/forecasts/range",
        params={"medicine": CROCIN, "start_month": "January"},
        headers={"X-Owner-Id": "owner-2"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert len(payload["forecast"]) == 12
    assert payload["forecast"][0]["period"] == "Jan"
    assert payload["total_avg_case"] == sum(p["avg_case_units"] for p in payload["forecast"])

    records = store.list_forecast_records("owner-2")
    assert records[0].weather == "Future-12M-Range"
    assert records[0].forecast_units == payload["total_avg_case"]


def test_range_forecast_requires_medicine() -> None:
    response = client.get("/api/v1/forecasts/range")

    assert response.status_code == 400


def test_records_require_owner_header() -> None:
    response = client.get("/api/v1/records")

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "missing_owner"
