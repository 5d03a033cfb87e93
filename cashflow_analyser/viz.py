"""Visualization utilities for the Cash-Flow Analyser."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from . import scenario, series

INCOME_COLOR = "#2a9d8f"
EXPENSE_COLOR = "#e76f51"
NET_COLOR = "#264653"
PROJECTED_COLOR = "#457b9d"

TREND_METRICS = {"income": "Revenue", "expense": "Expenses", "net": "Net cash flow"}
SMOOTHING_LABELS = {"simple": "average", "exponential": "EMA"}
GRANULARITIES = ("monthly", "weekly")
LEGEND = dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1)


def _empty_figure(message: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        showarrow=False,
        x=0.5,
        y=0.5,
        xref="paper",
        yref="paper",
        font=dict(size=14, color="#6c757d"),
    )
    fig.update_layout(margin=dict(l=0, r=0, t=20, b=20))
    return fig


def _month_axis(frame: pd.DataFrame) -> pd.Series:
    return pd.to_datetime(frame["month"], format="%Y-%m", errors="coerce")


def plot_monthly_net_flow(monthly_rollups: Iterable[Mapping[str, object]]) -> go.Figure:
    """Revenue and expense bars per month with the net cash-flow line on top."""

    data = list(monthly_rollups)
    if not data:
        return _empty_figure("No monthly rollups available.")

    df = pd.DataFrame(data)
    x = _month_axis(df)

    fig = go.Figure()
    fig.add_bar(name="Revenue", x=x, y=df["revenue"], marker_color=INCOME_COLOR)
    fig.add_bar(name="Expenses", x=x, y=-df["expenses"], marker_color=EXPENSE_COLOR)
    fig.add_trace(
        go.Scatter(
            name="Net",
            x=x,
            y=df["net_cash_flow"],
            mode="lines+markers",
            line=dict(color=NET_COLOR, width=2),
        )
    )
    fig.update_layout(
        barmode="relative",
        title="Monthly net cash flow",
        yaxis_title="Amount",
        xaxis_title="Month",
        margin=dict(l=0, r=0, t=45, b=0),
        legend=LEGEND,
    )
    return fig


def plot_cash_flow_trend(
    trend: Sequence[series.TrendPoint],
    metric: str = "net",
    window: int | None = None,
    smoothing: str = "simple",
) -> go.Figure:
    """One trend metric with its moving average and least-squares line.

    ``smoothing`` is ``simple`` for a trailing mean or ``exponential`` for an EMA
    over the same window.
    """

    if metric not in TREND_METRICS:
        raise ValueError(f"metric must be one of {sorted(TREND_METRICS)}")
    if smoothing not in SMOOTHING_LABELS:
        raise ValueError(f"smoothing must be one of {sorted(SMOOTHING_LABELS)}")
    if not trend:
        return _empty_figure("No trend data available.")

    df = pd.DataFrame(list(trend))
    x = _month_axis(df)
    values = [float(value) for value in df[metric]]
    window = window or series.adaptive_ma_window(len(values))
    line = series.linear_trend_line(values)
    if smoothing == "exponential":
        averaged = series.exponential_moving_average(values, window)
    else:
        averaged = series.progressive_moving_average(values, window)

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(name=TREND_METRICS[metric], x=x, y=values, mode="lines+markers", line=dict(color=NET_COLOR))
    )
    fig.add_trace(
        go.Scatter(
            name=f"{window}-month {SMOOTHING_LABELS[smoothing]}",
            x=x,
            y=averaged,
            mode="lines",
            line=dict(color=INCOME_COLOR, width=2),
        )
    )
    fig.add_trace(
        go.Scatter(
            name="Trend",
            x=x,
            y=line["values"],
            mode="lines",
            line=dict(color="#adb5bd", dash="dot"),
        )
    )
    fig.update_layout(
        title=f"{TREND_METRICS[metric]} trend",
        xaxis_title="Month",
        yaxis_title="Amount",
        margin=dict(l=0, r=0, t=45, b=0),
        legend=LEGEND,
    )
    return fig


def weekly_forecast_points(points: Sequence[Mapping[str, object]]) -> list[dict[str, object]]:
    """Spread forecast months over Monday-start weeks.

    A week takes the status of the month its first day falls in.
    """

    status_by_month = {point["month"]: point["status"] for point in points}
    trend: list[series.TrendPoint] = [
        {
            "month": str(point["month"]),
            "income": float(point["revenue"]),  # type: ignore[arg-type]
            "expense": float(point["expenses"]),  # type: ignore[arg-type]
            "net": float(point["net_cash_flow"]),  # type: ignore[arg-type]
        }
        for point in points
    ]
    return [
        {
            "week_start": week["week_start"],
            "label": week["label"],
            "net_cash_flow": week["net"],
            "status": status_by_month.get(week["period_start"][:7], "actual"),
        }
        for week in series.expand_monthly_to_weekly(trend)
    ]


def plot_cash_flow_forecast(
    points: Iterable[Mapping[str, object]],
    *,
    cumulative: bool = False,
    starting_balance: float = 0.0,
    granularity: str = "monthly",
) -> go.Figure:
    """Actual net cash flow as a solid line, projections dashed."""

    if granularity not in GRANULARITIES:
        raise ValueError(f"granularity must be one of {GRANULARITIES}")
    data = list(points)
    if not data:
        return _empty_figure("No forecast available.")

    if granularity == "weekly":
        data = weekly_forecast_points(data)
        df = pd.DataFrame(data)
        df["x"] = pd.to_datetime(df["week_start"])
    else:
        df = pd.DataFrame(data)
        df["x"] = _month_axis(df)
    if cumulative:
        df["value"] = series.cumulative_balance(data, starting_balance)
        y_title = "Cash balance"
    else:
        df["value"] = df["net_cash_flow"]
        y_title = "Net cash flow"

    actual = df.loc[df["status"] == "actual"]
    projected = df.loc[df["status"] == "projected"]
    if not actual.empty and not projected.empty:
        # Bridge the two traces so the dashed line starts at the last actual month.
        projected = pd.concat([actual.tail(1), projected])

    fig = go.Figure()
    if not actual.empty:
        fig.add_trace(
            go.Scatter(
                name="Actual",
                x=actual["x"],
                y=actual["value"],
                mode="lines+markers",
                line=dict(color=NET_COLOR, width=2),
            )
        )
    if not projected.empty:
        fig.add_trace(
            go.Scatter(
                name="Projected",
                x=projected["x"],
                y=projected["value"],
                mode="lines",
                line=dict(color=PROJECTED_COLOR, dash="dash", width=2),
            )
        )
    fig.update_layout(
        title="Cash-flow forecast",
        xaxis_title="Week" if granularity == "weekly" else "Month",
        yaxis_title=y_title,
        margin=dict(l=0, r=0, t=45, b=0),
        legend=LEGEND,
    )
    return fig


def plot_expense_donut(slices: Iterable[Mapping[str, object]]) -> go.Figure:
    data = list(slices)
    if not data:
        return _empty_figure("No expenses in the latest month.")

    df = pd.DataFrame(data)
    fig = px.pie(
        df,
        names="name",
        values="value",
        hole=0.55,
        title="Expense breakdown",
        color="name",
        color_discrete_map=dict(zip(df["name"], df["color"])),
    )
    fig.update_traces(textinfo="label+percent", pull=[0.03] * len(df))
    fig.update_layout(margin=dict(l=0, r=0, t=40, b=0))
    return fig


def plot_movers(movers: Iterable[Mapping[str, object]]) -> go.Figure:
    data = list(movers)
    if not data:
        return _empty_figure("No category movement to show.")

    df = pd.DataFrame(data)
    fig = px.bar(
        df,
        x="delta",
        y="category",
        orientation="h",
        labels={"delta": "Change vs last month", "category": "Category"},
        title="Biggest category movers",
        color=df["delta"].apply(lambda delta: "Up" if delta > 0 else "Down"),
        color_discrete_map={"Up": EXPENSE_COLOR, "Down": INCOME_COLOR},
    )
    fig.update_layout(margin=dict(l=0, r=0, t=40, b=0), showlegend=False, yaxis=dict(autorange="reversed"))
    return fig


def plot_scenario(points: Iterable[Mapping[str, object]]) -> go.Figure:
    data = list(points)
    if not data:
        return _empty_figure("Not enough history for a scenario.")

    df = pd.DataFrame(data)
    x = _month_axis(df)

    fig = go.Figure()
    fig.add_bar(name="Projected net", x=x, y=df["projected_net"], marker_color=PROJECTED_COLOR)
    fig.add_trace(
        go.Scatter(
            name="Cumulative net",
            x=x,
            y=df["cumulative_net"],
            mode="lines+markers",
            line=dict(color=NET_COLOR, width=2),
        )
    )
    trend = pd.DataFrame(scenario.scenario_trend(data))  # type: ignore[arg-type]
    for column, name, color in (
        ("income", "Projected revenue", INCOME_COLOR),
        ("expense", "Projected expenses", EXPENSE_COLOR),
    ):
        fig.add_trace(go.Scatter(name=name, x=x, y=trend[column], mode="lines", line=dict(color=color, dash="dot")))
    fig.update_layout(
        title="Scenario projection",
        xaxis_title="Month",
        yaxis_title="Amount",
        margin=dict(l=0, r=0, t=45, b=0),
        legend=LEGEND,
    )
    return fig
