"""Three-light trajectory signals derived from net cash-flow comparisons."""

from __future__ import annotations

from typing import Literal, Mapping, TypedDict

from . import utils
from .kpis import KpiTimeframeComparison

SignalLight = Literal["green", "red", "neutral"]

TRAJECTORY_SIGNALS = (
    ("monthly_trend", "Monthly Trend", "this_month"),
    ("short_term_trend", "Short-Term Trend", "last_3_months"),
    ("long_term_trend", "Long-Term Trend", "ttm"),
)

LIGHT_BY_DIRECTION: dict[str, SignalLight] = {"up": "green", "down": "red", "flat": "neutral"}


class TrajectorySignal(TypedDict):
    id: str
    label: str
    timeframe: str
    current_start_month: str | None
    current_end_month: str | None
    previous_start_month: str | None
    previous_end_month: str | None
    current_month_count: int
    previous_month_count: int
    current_net_cash_flow: float
    previous_net_cash_flow: float
    delta: float
    percent_change: float | None
    direction: utils.TrendDirection
    light: SignalLight
    has_sufficient_history: bool


def build_signal(signal_id: str, label: str, comparison: KpiTimeframeComparison) -> TrajectorySignal:
    net = comparison["net_cash_flow"]
    has_history = comparison["current_month_count"] > 0 and comparison["previous_month_count"] > 0
    # Empty-vs-empty windows still produce a numeric delta; never light it up.
    direction = utils.trend_from_delta(net["delta"]) if has_history else "flat"
    return {
        "id": signal_id,
        "label": label,
        "timeframe": comparison["timeframe"],
        "current_start_month": comparison["current_start_month"],
        "current_end_month": comparison["current_end_month"],
        "previous_start_month": comparison["previous_start_month"],
        "previous_end_month": comparison["previous_end_month"],
        "current_month_count": comparison["current_month_count"],
        "previous_month_count": comparison["previous_month_count"],
        "current_net_cash_flow": net["current"],
        "previous_net_cash_flow": net["previous"],
        "delta": net["delta"],
        "percent_change": net["percent_change"],
        "direction": direction,
        "light": LIGHT_BY_DIRECTION[direction],
        "has_sufficient_history": has_history,
    }


def compute_trajectory_signals(
    comparisons: Mapping[str, KpiTimeframeComparison],
) -> list[TrajectorySignal]:
    """Monthly, short-term and long-term signals, in that order."""

    return [
        build_signal(signal_id, label, comparisons[timeframe])
        for signal_id, label, timeframe in TRAJECTORY_SIGNALS
    ]
