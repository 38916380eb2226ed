from __future__ import annotations

from pathlib import Path
import sys


ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import Weather
from backend.app.services.catalog_service import (
    DEFAULT_MEDICINES,
    MEDICINE_CATEGORIES,
    SEASONAL_PATTERNS,
    VOLUME_MULTIPLIERS,
    CatalogService,
    base_multiplier,
    category_for,
    classify,
    seasonal_pattern,
    weather_factor,
)


def test_every_medicine_has_a_full_positive_pattern() -> None:
    for name in DEFAULT_MEDICINES:
        pattern = seasonal_pattern(name)
        assert len(pattern) == 12
        assert all(factor > 0 for factor in pattern)
        assert base_multiplier(name) > 0


def test_pattern_tables_are_well_formed() -> None:
    assert all(len(pattern) == 12 for pattern in SEASONAL_PATTERNS.values())
    assert set(VOLUME_MULTIPLIERS) == {"high", "medium_high", "medium", "specialty", "standard"}


def test_keyword_classification() -> None:
    crocin = classify("Crocin (Paracetamol)")
    assert crocin.seasonal_group == "winter_peak"
    assert crocin.volume_tier == "high"
    assert crocin.stock_tier == "high_demand"

    electral = classify("Electral (ORS)")
    assert electral.seasonal_group == "summer_peak"

    assert classify("Insulin Syringes").volume_tier == "specialty"
    assert classify("Dolo 650 (Paracetamol)").stock_tier == "critically_low"


def test_unknown_names_fall_back() -> None:
    unknown = classify("Completely New Brand")

    assert unknown.seasonal_group == "flat"
    assert unknown.volume_tier == "standard"
    assert unknown.stock_tier == "default"
    assert seasonal_pattern("Completely New Brand") == (1.0,) * 12
    assert base_multiplier("Completely New Brand") == 0.9
    assert classify("").seasonal_group == "flat"


def test_weather_factor_lookup() -> None:
    assert weather_factor(Weather.HOT, "Crocin (Paracetamol)") == 0.72
    assert weather_factor("Rainy", "Benadryl Syrup (Cough)") == 1.68
    assert weather_factor("Hot", "Completely New Brand") == 1.0
    assert weather_factor("Foggy", "Crocin (Paracetamol)") == 1.0


def test_catalog_service_lookups() -> None:
    catalog = CatalogService()

    assert "Crocin (Paracetamol)" in catalog.medicines
    assert "Pain & Fever" in catalog.categories()
    assert "Crocin (Paracetamol)" in catalog.medicines_in("Pain & Fever")
    assert catalog.medicines_in("Nonexistent") == []

    info = catalog.get_entry("Crocin (Paracetamol)").to_info()
    assert info.category == "Pain & Fever"
    assert info.weather_sensitivity["Hot"] == 0.72

    fallback = catalog.get_entry("Completely New Brand")
    assert not catalog.has_medicine("Completely New Brand")
    assert fallback.category == "Other"
    assert fallback.base_multiplier == 0.9


def test_custom_medicine_list() -> None:
    catalog = CatalogService(["Crocin (Paracetamol)", "House Brand"])

    assert catalog.medicines == ["Crocin (Paracetamol)", "House Brand"]
    assert catalog.categories() == {
        "Pain & Fever": ["Crocin (Paracetamol)"],
        "Other": ["House Brand"],
    }


def test_uncategorised_medicines_report_other() -> None:
    catalog = CatalogService()

    assert len(MEDICINE_CATEGORIES) == 12
    for name in ("Alprazolam", "Clonazepam", "Melatonin"):
        assert name in DEFAULT_MEDICINES
        assert category_for(name) == "Other"
    assert catalog.categories()["Other"] == ["Alprazolam", "Clonazepam", "Melatonin"]
