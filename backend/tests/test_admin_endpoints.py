from __future__ import annotations

from pathlib import Path
import sys

import yaml
from fastapi.testclient import TestClient


ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))


from backend.app.main import app  # noqa: E402
from backend.app.services.validation_service import ValidationService  # noqa: E402


client = TestClient(app)


def test_configs_get_put(monkeypatch, tmp_path: Path) -> None:
    cfg_module = "backend.app.api.v1.configs"
    monkeypatch.setattr(f"{cfg_module}.SETTINGS_PATH", str(tmp_path / "settings.yaml"))
    (tmp_path / "settings.yaml").write_text(
        yaml.safe_dump({"base_units": 250, "pricing": {"mode": "fixed", "fixed_unit_price": 50.0}})
    )

    response = client.get("/api/v1/configs/settings")
    assert response.status_code == 200
    assert response.json()["pricing"]["mode"] == "fixed"

    response = client.put(
        "/api/v1/configs/settings",
        json={"pricing_mode": "randomized", "horizon_days": 14},
    )
    assert response.status_code == 200
    settings = yaml.safe_load((tmp_path / "settings.yaml").read_text())
    assert settings["pricing"] == {"mode": "randomized", "fixed_unit_price": 50.0}
    assert settings["risk"]["horizon_days"] == 14
    assert settings["base_units"] == 250


def test_configs_put_validates(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "backend.app.api.v1.configs.SETTINGS_PATH", str(tmp_path / "settings.yaml")
    )

    assert client.put("/api/v1/configs/settings", json={"pricing_mode": "auction"}).status_code == 422
    assert client.put("/api/v1/configs/settings", json={"base_units": 0}).status_code == 422
    response = client.put(
        "/api/v1/configs/settings",
        json={"min_unit_price": 90.0, "max_unit_price": 80.0},
    )
    assert response.status_code == 422
    assert not (tmp_path / "settings.yaml").exists()


def test_configs_missing_file_returns_404(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "backend.app.api.v1.configs.SETTINGS_PATH", str(tmp_path / "missing.yaml")
    )

    response = client.get("/api/v1/configs/settings")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "not_found"


def test_data_validate(monkeypatch, tmp_path: Path) -> None:
    (tmp_path / "settings.yaml").write_text(yaml.safe_dump({"pricing": {"mode": "fixed"}}))
    monkeypatch.setattr(
        "backend.app.api.v1.data._validation_service",
        ValidationService(config_root=str(tmp_path)),
    )

    response = client.get("/api/v1/data/validate")
    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    names = {check["name"] for check in payload["checks"]}
    assert {"file_settings_exists", "pricing_mode_ok", "seasonal_patterns_ok"} <= names


def test_data_validate_flags_bad_pricing_mode(tmp_path: Path) -> None:
    (tmp_path / "settings.yaml").write_text(yaml.safe_dump({"pricing": {"mode": "auction"}}))

    result = ValidationService(config_root=str(tmp_path)).run()

    assert result["ok"] is False
    failed = [check["name"] for check in result["checks"] if not check["ok"]]
    assert failed == ["pricing_mode_ok"]


def test_health_and_metrics(monkeypatch, tmp_path: Path) -> None:
    assert client.get("/api/v1/health").json() == {"status": "ok"}

    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    ready = client.get("/api/v1/health/ready")
    assert ready.status_code == 503
    assert ready.json() == {"status": "degraded", "settings_file": False}

    client.get("/api/v1/forecasts/estimate", params={"medicine": "Crocin (Paracetamol)", "month": "May"})
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "medicast_forecasts_generated_total" in metrics.text
