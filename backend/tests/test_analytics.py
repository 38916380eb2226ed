from __future__ import annotations

from datetime import date
from pathlib import Path
import sys


ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

import numpy as np
import pytest
import yaml

from backend.app.models.schemas import HistoricalPoint, Month
from backend.app.services.analytics_service import (
    AnalyticsService,
    InvalidYearError,
    category_breakdown,
    detect_anomalies,
    history_frame,
    iqr_bounds,
    moving_average,
    resolve_years,
    summarize_history,
    year_over_year,
)
from backend.app.services.numeric import growth_pct
from backend.app.services.validation_service import InvalidSelectionError


def _point(year: int, month_index: int, units: int, revenue: float = 0.0) -> HistoricalPoint:
    month = Month.from_index(month_index)
    return HistoricalPoint(
        period=f"{month.short} {year}",
        month=month.short,
        month_index=month_index,
        year=year,
        units=units,
        revenue=revenue,
        trend=units,
        seasonal=units,
        residual=0,
    )


def _series(units_by_year: dict[int, list[int]]) -> list[HistoricalPoint]:
    return [
        _point(year, index, units)
        for year, values in sorted(units_by_year.items())
        for index, units in enumerate(values)
    ]


def _service(tmp_path: Path, seed: int = 11) -> AnalyticsService:
    return AnalyticsService(
        config_root=str(tmp_path),
        rng=np.random.default_rng(seed),
        today=lambda: date(2024, 5, 1),
    )


def test_synthesized_history_spans_three_years(tmp_path: Path) -> None:
    series = _service(tmp_path).synthesize_history("Crocin (Paracetamol)")

    assert len(series) == 36
    assert series[0].period == "Jan 2021"
    assert series[-1].period == "Dec 2023"
    assert all(point.units >= 0 for point in series)
    assert series[-1].trend > series[0].trend


def test_synthesized_history_respects_noise_band(tmp_path: Path) -> None:
    series = _service(tmp_path).synthesize_history("Completely New Brand", years=1, start_year=2020)

    # flat pattern, multiplier 0.9: expected units are 900 * 1.02 ** month
    for offset, point in enumerate(series):
        expected = 900 * 1.02 ** offset
        assert expected * 0.9 - 1 <= point.units <= expected * 1.1 + 1
        assert point.units * 150 - 1 <= point.revenue <= point.units * 200 + 1


def test_history_requires_medicine(tmp_path: Path) -> None:
    with pytest.raises(InvalidSelectionError):
        _service(tmp_path).synthesize_history(None)


def test_moving_average_prefix_is_empty() -> None:
    series = _series({2022: [10, 20, 30, 40, 50, 60, 70, 80, 90, 100, 110, 120]})

    averages = moving_average(series, window=3)

    assert averages[:2] == [None, None]
    assert averages[2:5] == [20, 30, 40]
    assert len(averages) == 12


def test_history_with_moving_average(tmp_path: Path) -> None:
    series = _service(tmp_path).history_with_moving_average("Crocin (Paracetamol)")

    assert series[0].moving_avg is None
    assert series[1].moving_avg is None
    assert series[2].moving_avg is not None
    assert list(history_frame(series).columns)[:2] == ["period", "month"]


def test_constant_series_has_no_anomalies() -> None:
    series = _series({2022: [100] * 12})

    flagged = detect_anomalies(series)

    assert len(flagged) == 12
    assert not any(point.is_anomaly for point in flagged)
    assert detect_anomalies([]) == []


def test_outliers_are_flagged() -> None:
    values = [100] * 11 + [1000]
    series = _series({2022: values})

    flagged = detect_anomalies(series)

    assert flagged[-1].is_anomaly
    assert flagged[-1].anomaly_type == "high"
    assert sum(point.is_anomaly for point in flagged) == 1
    assert iqr_bounds(values) == (100.0, 100.0)


def test_growth_is_zero_safe() -> None:
    assert growth_pct(0, 100) == 0.0
    assert growth_pct(100, 150) == 50.0


def test_year_over_year_pairs_months() -> None:
    series = _series({2021: [100] * 12, 2022: [150] * 6})

    rows = year_over_year(series, 2021, 2022)

    assert len(rows) == 12
    assert rows[0].month == "Jan"
    assert rows[0].growth_pct == 50
    assert rows[11].year2_units == 0
    assert rows[11].growth_pct == 0


def test_year_over_year_zero_baseline() -> None:
    series = _series({2021: [0] * 12, 2022: [100] * 12})

    assert all(row.growth_pct == 0 for row in year_over_year(series, 2021, 2022))


def test_summary_compares_last_two_years() -> None:
    series = _series({2021: [100] * 12, 2022: [110] * 12})

    summary = summarize_history(series)

    assert summary.total_units == 1320
    assert summary.avg_units == 110
    assert summary.yoy_growth == 10.0
    assert summary.anomaly_count == 0


def test_low_selling_products(tmp_path: Path) -> None:
    service = _service(tmp_path)

    products = service.low_selling_products(
        ["Crocin (Paracetamol)", "Insulin Syringes", "Completely New Brand"]
    )

    # 50 * 100 * multiplier must land in [1000, 2000]
    assert [product.medicine for product in products] == []

    (tmp_path / "settings.yaml").write_text(
        yaml.safe_dump({"low_selling": {"min_revenue": 0.0, "max_revenue": 5000.0}})
    )
    products = _service(tmp_path).low_selling_products(
        ["Crocin (Paracetamol)", "Insulin Syringes", "Completely New Brand"]
    )
    assert [product.medicine for product in products] == [
        "Insulin Syringes",
        "Completely New Brand",
    ]

    breakdown = category_breakdown(products)
    assert sum(row["count"] for row in breakdown) == 2
    assert category_breakdown([]) == []


def test_resolve_years_defaults_and_single_year() -> None:
    three_years = _series({2020: [1] * 12, 2021: [2] * 12, 2022: [3] * 12})
    assert resolve_years(three_years) == (2021, 2022)
    assert resolve_years(three_years, year1=2020) == (2020, 2022)

    one_year = _series({2022: [5] * 12})
    assert resolve_years(one_year) is None
    assert resolve_years(one_year, 2022, 2022) == (2022, 2022)
    with pytest.raises(InvalidYearError):
        resolve_years(one_year, year1=2021)


def test_analyze_derives_everything_from_one_series(tmp_path: Path) -> None:
    report = _service(tmp_path).analyze("Crocin (Paracetamol)")

    assert report.summary.total_units == sum(point.units for point in report.history[-12:])
    assert [row.units for row in report.anomalies] == [point.units for point in report.history]
    assert (report.year1, report.year2) == (2022, 2023)
    assert report.year_over_year[0].year2_units == report.history[24].units


def test_analyze_single_year_history(tmp_path: Path) -> None:
    (tmp_path / "settings.yaml").write_text(yaml.safe_dump({"analytics": {"years": 1}}))

    report = _service(tmp_path).analyze("Crocin (Paracetamol)")

    assert len(report.history) == 12
    assert report.year_over_year == []
    assert report.year1 is None
