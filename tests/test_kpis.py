from __future__ import annotations

from datetime import date

import pytest

from cashflow_analyser import kpis, rollups, timeframes, trajectory
from cashflow_analyser.transactions import Transaction


def test_compare_metric_delta_and_percent() -> None:
    result = kpis.compare_metric(5200, 5000)

    assert result["delta"] == pytest.approx(200.0)
    assert result["percent_change"] == pytest.approx(4.0)
    assert kpis.compare_metric(10, 0)["percent_change"] is None


def test_compare_uses_absolute_previous_for_percent() -> None:
    result = kpis.compare_metric(-50, -100)

    assert result["delta"] == pytest.approx(50.0)
    assert result["percent_change"] == pytest.approx(50.0)


def test_compare_is_symmetric_for_identical_windows(make_rollups) -> None:
    summary = kpis.summarize_rollups(make_rollups([1000, 1200], [600, 700]))

    result = kpis.compare(summary, summary, "last_3_months")

    assert result["timeframe"] == "last_3_months"
    for metric in kpis.METRICS:
        assert result[metric]["delta"] == 0.0
        assert result[metric]["percent_change"] == 0.0


def test_compare_of_empty_windows_has_no_percent_change() -> None:
    empty = kpis.summarize_rollups([])

    result = kpis.compare(empty, empty)

    assert result["current_month_count"] == result["previous_month_count"] == 0
    for metric in kpis.METRICS:
        assert result[metric]["delta"] == 0.0
        assert result[metric]["percent_change"] is None


def test_aggregate_recomputes_savings_rate_from_totals(make_rollups) -> None:
    window = make_rollups([100, 300], [50, 300])

    summary = kpis.aggregate(window, "last_3_months")

    assert summary["timeframe"] == "last_3_months"
    assert summary["net_cash_flow"] == pytest.approx(50.0)
    assert summary["savings_rate"] == pytest.approx(12.5)
    assert summary["start_month"] == "2023-01"
    assert summary["end_month"] == "2023-02"
    assert summary["month_count"] == 2


def test_aggregate_of_empty_window() -> None:
    summary = kpis.aggregate([], "this_month")

    assert summary["month_count"] == 0
    assert summary["start_month"] is None
    assert summary["revenue"] == 0.0


def test_select_window_timeframes(make_rollups) -> None:
    rows = make_rollups([100] * 5, [50] * 5, start="2023-11")

    assert [row["month"] for row in timeframes.select_window(rows, "ytd")] == ["2024-01", "2024-02", "2024-03"]
    assert [row["month"] for row in timeframes.select_window(rows, "last_month")] == ["2024-02"]
    assert [row["month"] for row in timeframes.select_window(rows, "this_month")] == ["2024-03"]
    assert len(timeframes.select_window(rows, "last_12_months")) == 5
    assert len(timeframes.select_window(rows, "all_dates")) == 5
    with pytest.raises(ValueError):
        timeframes.select_window(rows, "fortnight")


def test_comparison_blocks_require_a_full_prior_block(make_rollups) -> None:
    rows = make_rollups([100] * 15, [50] * 15, start="2023-01")

    ytd = timeframes.select_comparison_blocks(rows, "ytd")
    assert [row["month"] for row in ytd["current"]] == ["2024-01", "2024-02", "2024-03"]
    assert [row["month"] for row in ytd["previous"]] == ["2023-01", "2023-02", "2023-03"]

    ttm = timeframes.select_comparison_blocks(rows, "ttm")
    assert len(ttm["current"]) == 12
    assert ttm["previous"] == []

    quarter = timeframes.select_comparison_blocks(rows, "last_3_months")
    assert [row["month"] for row in quarter["previous"]] == ["2023-10", "2023-11", "2023-12"]


def test_single_month_has_no_history() -> None:
    ledger = [
        Transaction.from_raw(date(2024, 5, 1), 4000, "Sales"),
        Transaction.from_raw(date(2024, 5, 2), -1000, "Rent"),
    ]
    comparisons = kpis.compute_kpi_comparisons(rollups.compute_monthly_rollups(ledger))

    quarter = comparisons["last_3_months"]
    assert quarter["previous_month_count"] == 0
    for metric in kpis.METRICS:
        assert quarter[metric]["percent_change"] is None

    signals = {signal["id"]: signal for signal in trajectory.compute_trajectory_signals(comparisons)}
    assert signals["short_term_trend"]["light"] == "neutral"
    assert signals["short_term_trend"]["has_sufficient_history"] is False


def test_header_labels(make_rollups) -> None:
    rows = make_rollups([100] * 15, [50] * 15, start="2023-01")
    labels = kpis.compute_kpi_header_labels(kpis.compute_kpi_comparisons(rows))

    assert labels["ytd"]["text"] == "YTD through Mar 2024 · vs YTD through Mar 2023"
    assert labels["ttm"]["text"] == "Last 12 Months through Mar 2024 · vs prior 12 Months"
    assert labels["this_month"]["text"] == "Mar 2024 · vs Feb 2024"
    assert labels["last_3_months"]["text"] == "Jan 2024 – Mar 2024 · vs Oct 2023 – Dec 2023"
    assert labels["ttm"]["previous_month_count"] == 0


def test_kpi_cards(two_month_ledger) -> None:
    aggregations = kpis.compute_kpi_aggregations(rollups.compute_monthly_rollups(two_month_ledger, "total"))
    cards = kpis.build_kpi_cards(aggregations["this_month"], aggregations["last_month"])

    assert [card["id"] for card in cards] == ["income", "expense", "net", "savings_rate"]
    income = cards[0]
    assert income["value"] == pytest.approx(5200.0)
    assert income["previous_value"] == pytest.approx(5000.0)
    assert income["delta_percent"] == pytest.approx(4.0)
    assert income["trend"] == "up"
    assert cards[3]["format"] == "percent"
