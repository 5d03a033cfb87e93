"""Regression tests for the synthetic ledger and the end-to-end pipeline."""

from __future__ import annotations

import plotly.graph_objects as go
import pytest

from cashflow_analyser import dashboard, forecast, scenario, summarize, synth, transactions, viz


def test_generate_transactions_is_deterministic() -> None:
    first = synth.generate_transactions(12, seed=123)
    second = synth.generate_transactions(12, seed=123)

    assert first == second
    assert first != synth.generate_transactions(12, seed=124)
    assert [txn.date for txn in first] == sorted(txn.date for txn in first)
    assert {txn.month for txn in first} == {f"2023-{number:02d}" for number in range(1, 13)}


def test_generate_transactions_has_every_flow() -> None:
    ledger = synth.generate_transactions()

    assert any(txn.type == "income" for txn in ledger)
    assert any(txn.type == "expense" for txn in ledger)
    assert any(txn.category == "Equity: Capital Distribution" for txn in ledger)
    with pytest.raises(ValueError):
        synth.generate_transactions(0)


def test_write_synthetic_csv_round_trips(tmp_path) -> None:
    path = synth.write_synthetic_csv(tmp_path / "ledger.csv", months_count=6, seed=7)
    loaded = transactions.load_transactions_csv(path)
    generated = synth.generate_transactions(6, seed=7)

    assert len(loaded) == len(generated)
    assert sum(txn.raw_amount for txn in loaded) == pytest.approx(sum(txn.raw_amount for txn in generated))


def test_viz_charts_return_figs() -> None:
    model = dashboard.compute_dashboard_model(synth.generate_transactions())
    points = forecast.select_forecast_range(model["cash_flow_forecast"]["points"], 12)
    scenario_points = scenario.project_scenario(model, scenario.ScenarioInput())

    figures = [
        viz.plot_monthly_net_flow(model["monthly_rollups"]),
        viz.plot_cash_flow_trend(model["trend"], metric="income"),
        viz.plot_cash_flow_forecast(points),
        viz.plot_cash_flow_forecast(points, cumulative=True, starting_balance=10_000),
        viz.plot_expense_donut(model["expense_slices"]),
        viz.plot_movers(model["movers"]),
        viz.plot_scenario(scenario_points),
    ]

    for figure in figures:
        assert isinstance(figure, go.Figure)
        assert figure.data, "Chart should plot at least one trace"


def test_viz_empty_inputs_show_placeholder() -> None:
    figure = viz.plot_cash_flow_forecast([])

    assert not figure.data
    assert figure.layout.annotations[0].text == "No forecast available."
    with pytest.raises(ValueError):
        viz.plot_cash_flow_trend([], metric="profit")


def test_summarize_dashboard_fallback() -> None:
    model = dashboard.compute_dashboard_model(synth.generate_transactions())

    assert summarize.summarize_dashboard(model).startswith("Highlights")


def test_weekly_forecast_points_follow_month_status(make_rollups) -> None:
    rows = make_rollups([3100, 2900], [1550, 1450], start="2024-01")
    points = forecast.build_cash_flow_forecast(rows, horizon=1)["points"]

    weekly = viz.weekly_forecast_points(points)

    statuses = [week["status"] for week in weekly]
    assert statuses == sorted(statuses)
    first_projected = next(week for week in weekly if week["status"] == "projected")
    assert first_projected["week_start"] == "2024-03-04"
    total_net = sum(point["net_cash_flow"] for point in points)
    assert sum(week["net_cash_flow"] for week in weekly) == pytest.approx(total_net, abs=0.1)


def test_chart_options() -> None:
    model = dashboard.compute_dashboard_model(synth.generate_transactions())
    points = forecast.select_forecast_range(model["cash_flow_forecast"]["points"], 6)

    weekly = viz.plot_cash_flow_forecast(points, cumulative=True, granularity="weekly")
    assert [trace.name for trace in weekly.data] == ["Actual", "Projected"]
    assert weekly.layout.xaxis.title.text == "Week"

    ema = viz.plot_cash_flow_trend(model["trend"], smoothing="exponential", window=3)
    assert ema.data[1].name == "3-month EMA"

    scenario_fig = viz.plot_scenario(scenario.project_scenario(model, scenario.ScenarioInput(months=6)))
    assert [trace.name for trace in scenario_fig.data] == [
        "Projected net",
        "Cumulative net",
        "Projected revenue",
        "Projected expenses",
    ]

    with pytest.raises(ValueError):
        viz.plot_cash_flow_forecast(points, granularity="daily")
    with pytest.raises(ValueError):
        viz.plot_cash_flow_trend(model["trend"], smoothing="median")
