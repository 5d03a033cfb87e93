"""Dashboard model: every engine output for one transaction set and mode."""

from __future__ import annotations

import json
import logging
from typing import Iterable, TypedDict

import pandas as pd

from . import features, forecast, insights, kpis, rollups, timeframes, trajectory, utils
from .series import TrendPoint

logger = logging.getLogger(__name__)

DEFAULT_KPI_TIMEFRAME = "ttm"


class DashboardModel(TypedDict):
    latest_month: str
    previous_month: str | None
    cash_flow_mode: str
    transaction_count: int
    monthly_rollups: list[rollups.MonthlyRollup]
    kpi_aggregation_by_timeframe: dict[str, kpis.KpiAggregate]
    kpi_comparison_by_timeframe: dict[str, kpis.KpiTimeframeComparison]
    kpi_header_label_by_timeframe: dict[str, kpis.KpiHeaderLabel]
    trajectory_signals: list[trajectory.TrajectorySignal]
    kpi_cards: list[kpis.KpiCard]
    kpi_timeframe: str
    selected_kpi_cards: list[kpis.KpiCard]
    trend: list[TrendPoint]
    cash_flow_forecast: forecast.CashFlowForecast
    expense_slices: list[insights.ExpenseSlice]
    top_payees: list[insights.PayeeTotal]
    movers: list[insights.Mover]
    opportunity_total: float
    opportunities: list[insights.Opportunity]
    summary_bullets: list[str]
    dig_here_preview: list[insights.Opportunity]
    sustainability: list[insights.SustainabilityIndicator]


def compute_dashboard_model(
    transactions: Iterable[object] | pd.DataFrame,
    *,
    cash_flow_mode: str = "operating",
    kpi_timeframe: str = DEFAULT_KPI_TIMEFRAME,
    forecast_horizon: int = forecast.FORECAST_HORIZON_MONTHS,
) -> DashboardModel:
    """Compute the full model from scratch; nothing is cached or patched."""

    mode = utils.validate_cash_flow_mode(cash_flow_mode)
    if kpi_timeframe not in timeframes.KPI_COMPARISON_TIMEFRAMES:
        raise ValueError(f"unknown comparison timeframe: {kpi_timeframe!r}")

    frame = features.add_engineered_features(transactions)
    monthly = rollups.compute_monthly_rollups(frame, mode)

    aggregations = kpis.compute_kpi_aggregations(monthly)
    comparisons = kpis.compute_kpi_comparisons(monthly)
    header_labels = kpis.compute_kpi_header_labels(comparisons)
    signals = trajectory.compute_trajectory_signals(comparisons)
    cash_flow_forecast = forecast.build_cash_flow_forecast(monthly, forecast_horizon)

    latest_month = timeframes.latest_month(monthly)
    previous_month = timeframes.previous_month(monthly)

    if latest_month is None:
        return {
            "latest_month": "",
            "previous_month": None,
            "cash_flow_mode": mode,
            "transaction_count": 0,
            "monthly_rollups": [],
            "kpi_aggregation_by_timeframe": aggregations,
            "kpi_comparison_by_timeframe": comparisons,
            "kpi_header_label_by_timeframe": header_labels,
            "trajectory_signals": signals,
            "kpi_cards": [],
            "kpi_timeframe": kpi_timeframe,
            "selected_kpi_cards": [],
            "trend": [],
            "cash_flow_forecast": cash_flow_forecast,
            "expense_slices": [],
            "top_payees": [],
            "movers": [],
            "opportunity_total": 0.0,
            "opportunities": [],
            "summary_bullets": [],
            "dig_here_preview": [],
            "sustainability": [],
        }

    latest_rollup = monthly[-1]
    previous_rollup = monthly[-2] if previous_month else None
    latest_frame = frame.loc[frame["month"] == latest_month]
    previous_frame = frame.loc[frame["month"] == previous_month] if previous_month else frame.iloc[0:0]

    opportunities = insights.build_opportunities(frame, monthly, latest_month)
    cards = kpis.build_kpi_cards(aggregations["this_month"], aggregations["last_month"])
    selected_cards = kpis.cards_for_comparison(comparisons[kpi_timeframe])

    logger.debug(
        "Dashboard model: %d transaction(s), %d month(s), latest %s, mode %s",
        len(frame),
        len(monthly),
        latest_month,
        mode,
    )

    return {
        "latest_month": latest_month,
        "previous_month": previous_month,
        "cash_flow_mode": mode,
        "transaction_count": int(len(frame)),
        "monthly_rollups": monthly,
        "kpi_aggregation_by_timeframe": aggregations,
        "kpi_comparison_by_timeframe": comparisons,
        "kpi_header_label_by_timeframe": header_labels,
        "trajectory_signals": signals,
        "kpi_cards": cards,
        "kpi_timeframe": kpi_timeframe,
        "selected_kpi_cards": selected_cards,
        "trend": [
            {
                "month": rollup["month"],
                "income": rollup["revenue"],
                "expense": rollup["expenses"],
                "net": rollup["net_cash_flow"],
            }
            for rollup in monthly
        ],
        "cash_flow_forecast": cash_flow_forecast,
        "expense_slices": insights.build_expense_slices(latest_frame),
        "top_payees": insights.build_top_payees(latest_frame),
        "movers": insights.build_movers(latest_frame, previous_frame),
        "opportunity_total": utils.round2(sum(item["savings"] for item in opportunities)),
        "opportunities": opportunities,
        "summary_bullets": insights.build_summary_bullets(latest_rollup, previous_rollup, opportunities, len(frame)),
        "dig_here_preview": opportunities[: insights.DIG_HERE_PREVIEW],
        "sustainability": insights.build_sustainability(selected_cards, latest_rollup, len(monthly)),
    }


def to_json(model: DashboardModel, *, indent: int | None = 2) -> str:
    """Serialise the model with camelCase keys."""

    return json.dumps(utils.to_camel_keys(model), indent=indent)
