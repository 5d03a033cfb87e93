from __future__ import annotations

import pytest

from cashflow_analyser import forecast, months


def _seasonal_expenses() -> tuple[list[str], list[float]]:
    keys = [months.add_months("2022-01", offset) for offset in range(24)]
    values = [1600.0 if key.endswith("-12") else 1000.0 for key in keys]
    return keys, values


def test_fit_linear_regression_exact_line() -> None:
    fit = forecast.fit_linear_regression([1, 3, 5, 7])

    assert fit.slope == pytest.approx(2.0)
    assert fit.intercept == pytest.approx(1.0)
    assert fit.r_squared == pytest.approx(1.0)
    assert forecast.fit_linear_regression([]).slope == 0.0
    assert forecast.fit_linear_regression([42]).intercept == pytest.approx(42.0)


def test_fit_trend_prefers_confident_linear_trend() -> None:
    model = forecast.fit_trend([1000 + 100 * index for index in range(12)])

    assert model.kind == "linear-trend"
    assert model.slope == pytest.approx(100.0)
    assert model.project(1) == pytest.approx(2200.0)


def test_fit_trend_falls_back_to_rolling_average() -> None:
    short = forecast.fit_trend([100, 200, 300])
    assert short.kind == "rolling-average"
    assert short.project(5) == pytest.approx(200.0)

    noisy = forecast.fit_trend([100, 200] * 4)
    assert noisy.kind == "rolling-average"
    assert noisy.baseline == pytest.approx(500 / 3)
    assert noisy.slope == pytest.approx(20.0)


def test_fit_trend_requires_a_meaningful_slope() -> None:
    below_floor = forecast.fit_trend([1000 + 0.5 * index for index in range(12)])
    assert below_floor.r_squared == pytest.approx(1.0)
    assert below_floor.kind == "rolling-average"
    assert below_floor.slope == pytest.approx(0.5)

    # 0.5% of the 104,000 baseline is 520 per month
    values = [100_000 + 400 * index for index in range(12)]
    assert forecast.minimum_meaningful_slope(values, forecast.rolling_baseline(values)) == pytest.approx(520.0)
    assert forecast.fit_trend(values).kind == "rolling-average"

    # 0.5% of the 106,000 baseline is 530 per month
    assert forecast.fit_trend([100_000 + 600 * index for index in range(12)]).kind == "linear-trend"


def test_detect_seasonality_recentres_adjustments() -> None:
    keys, values = _seasonal_expenses()

    profile = forecast.detect_seasonality(keys, values)

    assert profile.detected
    assert profile.distinct_months == 12
    assert profile.adjustments[12] > 400
    weighted = sum(profile.adjustments[number] * profile.group_sizes[number] for number in profile.adjustments)
    assert weighted == pytest.approx(0.0, abs=1e-6)
    assert profile.adjustment_for("2025-12") == pytest.approx(profile.adjustments[12])
    assert profile.adjustment_for("bogus") == 0.0


def test_detect_seasonality_needs_history() -> None:
    keys, values = _seasonal_expenses()

    profile = forecast.detect_seasonality(keys[:12], values[:12])

    assert not profile.detected
    assert "18" in profile.reason
    assert profile.adjustment_for("2023-12") == 0.0


def test_forecast_months_are_contiguous_and_capped(make_rollups) -> None:
    rows = make_rollups([1000 + 50 * index for index in range(12)], [600] * 12, start="2023-06")

    result = forecast.build_cash_flow_forecast(rows, horizon=100)

    assert result["horizon_months"] == forecast.FORECAST_HORIZON_MONTHS
    statuses = [point["status"] for point in result["points"]]
    assert statuses.count("actual") == 12
    assert statuses.count("projected") == 36
    keys = [point["month"] for point in result["points"]]
    assert keys == [months.add_months("2023-06", offset) for offset in range(48)]
    for point in result["points"]:
        assert point["net_cash_flow"] == pytest.approx(point["revenue"] - point["expenses"], abs=0.011)


def test_forecast_floors_projected_components_at_zero(make_rollups) -> None:
    rows = make_rollups([12000 - 1000 * index for index in range(12)], [500] * 12)

    result = forecast.build_cash_flow_forecast(rows, horizon=6)
    projected = [point for point in result["points"] if point["status"] == "projected"]

    assert result["revenue_model"]["kind"] == "linear-trend"
    assert result["expense_model"]["kind"] == "rolling-average"
    assert all(point["revenue"] >= 0 for point in projected)
    assert projected[-1]["revenue"] == 0.0
    assert projected[-1]["net_cash_flow"] == pytest.approx(-500.0)


def test_forecast_applies_detected_seasonality(make_rollups) -> None:
    keys, values = _seasonal_expenses()
    rows = make_rollups([5000] * 24, values, start=keys[0])

    result = forecast.build_cash_flow_forecast(rows, horizon=12)
    projected = {point["month"]: point for point in result["points"] if point["status"] == "projected"}

    assert result["seasonality"]["detected"] is True
    assert projected["2024-12"]["expenses"] > projected["2024-11"]["expenses"]
    assert "Seasonal adjustments applied" in result["expense_note"]


def test_forecast_without_history() -> None:
    result = forecast.build_cash_flow_forecast([])

    assert result["points"] == []
    assert result["revenue_note"] == "Revenue: no history yet, projected at zero."
    assert result["margins"]["revenue_margin_pct"] == 0


def test_suggest_margins(make_rollups) -> None:
    short = forecast.suggest_margins(make_rollups([1000] * 5, [500] * 5))
    assert short["revenue_margin_pct"] == 0
    assert short["expense_margin_pct"] == 0
    assert short["revenue_volatility"] is None

    steady = forecast.suggest_margins(make_rollups([1000] * 12, [500] * 12))
    assert steady["revenue_margin_pct"] == 0
    assert steady["expense_margin_pct"] == 0

    # volatility = 0.6 * (500 / 1500) + 0.4 * (6 * 1.0 + 5 * 0.5) / 11
    volatile = forecast.suggest_margins(make_rollups([1000, 2000] * 6, [500] * 12))
    assert volatile["revenue_volatility"] == pytest.approx(0.5091, abs=1e-4)
    assert volatile["revenue_margin_pct"] == -30

    # 0.6 * (200 / 700) + 0.4 * (6 * 0.8 + 5 * 400 / 900) / 11
    costly = forecast.suggest_margins(make_rollups([1000] * 12, [500, 900] * 6))
    assert costly["expense_volatility"] == pytest.approx(0.4268, abs=1e-4)
    assert costly["expense_margin_pct"] == 20
    assert costly["revenue_margin_pct"] == 0


def test_select_forecast_range(make_rollups) -> None:
    rows = make_rollups([1000] * 6, [500] * 6)
    points = forecast.build_cash_flow_forecast(rows, horizon=12)["points"]

    selected = forecast.select_forecast_range(points, 3)

    assert len(selected) == 9
    assert selected[-1]["month"] == "2023-09"
    assert len(forecast.select_forecast_range(points, 0)) == 6
