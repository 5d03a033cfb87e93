"""Display transforms for monthly series: smoothing, running balances, weekly buckets."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Mapping, Sequence, TypedDict

import numpy as np
import pandas as pd

from . import forecast, months, utils


class TrendPoint(TypedDict):
    month: str
    income: float
    expense: float
    net: float


class WeeklyPoint(TypedDict):
    week_start: str
    period_start: str
    period_end: str
    income: float
    expense: float
    net: float
    label: str


class TrendLine(TypedDict):
    values: list[float]
    slope_per_month: float


def progressive_moving_average(values: Sequence[float], window: int) -> list[float]:
    """Trailing mean that uses whatever history exists for the first points."""

    if not len(values):
        return []
    window = max(1, int(window))
    averaged = pd.Series(values, dtype=float).rolling(window, min_periods=1).mean()
    return [float(value) for value in averaged]


def exponential_moving_average(values: Sequence[float], period: int) -> list[float]:
    if not len(values):
        return []
    if period <= 1:
        return [float(value) for value in values]
    smoothed = pd.Series(values, dtype=float).ewm(alpha=2.0 / (period + 1), adjust=False).mean()
    return [float(value) for value in smoothed]


def linear_trend_line(values: Sequence[float]) -> TrendLine:
    fit = forecast.fit_linear_regression(values)
    fitted = fit.intercept + fit.slope * np.arange(len(values), dtype=float)
    return {"values": [float(value) for value in fitted], "slope_per_month": fit.slope}


def adaptive_ma_window(timeframe: int | str) -> int:
    """Moving-average window for a chart showing ``timeframe`` months (or ``"all"``)."""

    if timeframe == "all":
        return 12
    if int(timeframe) <= 6:
        return 3
    if int(timeframe) <= 24:
        return 6
    return 12


def cumulative_balance(
    points: Sequence[Mapping[str, object]],
    starting_balance: float = 0.0,
    key: str = "net_cash_flow",
) -> list[float]:
    """Running cash balance after each point's net flow."""

    running = float(starting_balance)
    balances = []
    for point in points:
        running += float(point[key])  # type: ignore[arg-type]
        balances.append(utils.round2(running))
    return balances


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _short_day(day: date) -> str:
    return f"{months.MONTH_ABBREVIATIONS[day.month]} {day.day}"


def expand_monthly_to_weekly(points: Sequence[TrendPoint]) -> list[WeeklyPoint]:
    """Spread monthly totals evenly across days and regroup them by Monday-start week.

    Weeks are clipped to the first and last month in ``points``; this is a
    display interpolation, not a re-aggregation of transactions.
    """

    usable = [point for point in points if months.parse_month(point["month"])]
    if not usable:
        return []

    by_month = {point["month"]: point for point in usable}
    range_start = months.month_start(usable[0]["month"])
    last = usable[-1]["month"]
    range_end = months.month_start(last) + timedelta(days=months.days_in_month(last) - 1)

    weekly: list[WeeklyPoint] = []
    week_start = _week_start(range_start)
    while week_start <= range_end:
        overlap_start = max(week_start, range_start)
        overlap_end = min(week_start + timedelta(days=6), range_end)
        income = expense = net = 0.0
        cursor = overlap_start
        while cursor <= overlap_end:
            key = months.month_of(cursor)
            monthly = by_month.get(key)
            if monthly is not None:
                days = months.days_in_month(key)
                income += monthly["income"] / days
                expense += monthly["expense"] / days
                net += monthly["net"] / days
            cursor += timedelta(days=1)

        weekly.append(
            {
                "week_start": week_start.isoformat(),
                "period_start": overlap_start.isoformat(),
                "period_end": overlap_end.isoformat(),
                "income": utils.round2(income),
                "expense": utils.round2(expense),
                "net": utils.round2(net),
                "label": f"{_short_day(overlap_start)} – {_short_day(overlap_end)}, {overlap_end.year}",
            }
        )
        week_start += timedelta(days=7)
    return weekly
