"""KPI aggregation over timeframe windows and window-over-window comparison."""

from __future__ import annotations

from typing import Literal, Sequence, TypedDict

from . import months, timeframes, utils
from .rollups import MonthlyRollup


class RollupSummary(TypedDict):
    start_month: str | None
    end_month: str | None
    month_count: int
    transaction_count: int
    revenue: float
    expenses: float
    net_cash_flow: float
    savings_rate: float


class KpiAggregate(RollupSummary):
    timeframe: str


class MetricComparison(TypedDict):
    current: float
    previous: float
    delta: float
    percent_change: float | None


class KpiTimeframeComparison(TypedDict):
    timeframe: str
    current_start_month: str | None
    current_end_month: str | None
    previous_start_month: str | None
    previous_end_month: str | None
    current_month_count: int
    previous_month_count: int
    revenue: MetricComparison
    expenses: MetricComparison
    net_cash_flow: MetricComparison
    savings_rate: MetricComparison


class KpiHeaderLabel(TypedDict):
    timeframe: str
    current_start_month: str | None
    current_end_month: str | None
    previous_start_month: str | None
    previous_end_month: str | None
    current_month_count: int
    previous_month_count: int
    text: str


class KpiCard(TypedDict):
    id: str
    label: str
    value: float
    previous_value: float
    delta_percent: float | None
    trend: utils.TrendDirection
    format: Literal["currency", "percent"]


METRICS = ("revenue", "expenses", "net_cash_flow", "savings_rate")

CARD_DEFINITIONS = (
    ("income", "Revenue", "revenue", "currency"),
    ("expense", "Expenses", "expenses", "currency"),
    ("net", "Net Cash Flow", "net_cash_flow", "currency"),
    ("savings_rate", "Savings Rate", "savings_rate", "percent"),
)


def summarize_rollups(rollups: Sequence[MonthlyRollup]) -> RollupSummary:
    """Sum a window and recompute net and savings rate from the totals."""

    if not rollups:
        return {
            "start_month": None,
            "end_month": None,
            "month_count": 0,
            "transaction_count": 0,
            "revenue": 0.0,
            "expenses": 0.0,
            "net_cash_flow": 0.0,
            "savings_rate": 0.0,
        }

    revenue = sum(rollup["revenue"] for rollup in rollups)
    expenses = sum(rollup["expenses"] for rollup in rollups)
    net_cash_flow = revenue - expenses
    return {
        "start_month": rollups[0]["month"],
        "end_month": rollups[-1]["month"],
        "month_count": len(rollups),
        "transaction_count": sum(rollup["transaction_count"] for rollup in rollups),
        "revenue": utils.round2(revenue),
        "expenses": utils.round2(expenses),
        "net_cash_flow": utils.round2(net_cash_flow),
        "savings_rate": utils.round2(utils.savings_rate(revenue, net_cash_flow)),
    }


def aggregate(rollups: Sequence[MonthlyRollup], timeframe: str = "all_dates") -> KpiAggregate:
    summary = summarize_rollups(rollups)
    return {"timeframe": timeframe, **summary}  # type: ignore[typeddict-item]


def compute_kpi_aggregations(rollups: Sequence[MonthlyRollup]) -> dict[str, KpiAggregate]:
    return {
        timeframe: aggregate(timeframes.select_window(rollups, timeframe), timeframe)
        for timeframe in timeframes.KPI_TIMEFRAMES
    }


def compare_metric(current: float, previous: float) -> MetricComparison:
    return {
        "current": utils.round2(current),
        "previous": utils.round2(previous),
        "delta": utils.round2(current - previous),
        "percent_change": utils.pct_delta(current, previous),
    }


def compare(
    current: RollupSummary,
    previous: RollupSummary,
    timeframe: str = "this_month",
) -> KpiTimeframeComparison:
    """Pair two window summaries metric by metric."""

    comparison = {
        "timeframe": timeframe,
        "current_start_month": current["start_month"],
        "current_end_month": current["end_month"],
        "previous_start_month": previous["start_month"],
        "previous_end_month": previous["end_month"],
        "current_month_count": current["month_count"],
        "previous_month_count": previous["month_count"],
    }
    for metric in METRICS:
        comparison[metric] = compare_metric(current[metric], previous[metric])
    return comparison  # type: ignore[return-value]


def compute_kpi_comparisons(rollups: Sequence[MonthlyRollup]) -> dict[str, KpiTimeframeComparison]:
    comparisons = {}
    for timeframe in timeframes.KPI_COMPARISON_TIMEFRAMES:
        blocks = timeframes.select_comparison_blocks(rollups, timeframe)
        comparisons[timeframe] = compare(
            summarize_rollups(blocks["current"]),
            summarize_rollups(blocks["previous"]),
            timeframe,
        )
    return comparisons


def _end_label(month: str | None) -> str:
    return months.month_label(month) if month else "n/a"


def header_label_text(comparison: KpiTimeframeComparison) -> str:
    timeframe = comparison["timeframe"]
    if timeframe == "ytd":
        return (
            f"YTD through {_end_label(comparison['current_end_month'])}"
            f" · vs YTD through {_end_label(comparison['previous_end_month'])}"
        )
    if timeframe == "ttm":
        return f"Last 12 Months through {_end_label(comparison['current_end_month'])} · vs prior 12 Months"

    current_range = months.month_range_label(comparison["current_start_month"], comparison["current_end_month"])
    previous_range = months.month_range_label(comparison["previous_start_month"], comparison["previous_end_month"])
    return f"{current_range} · vs {previous_range}"


def compute_kpi_header_labels(comparisons: dict[str, KpiTimeframeComparison]) -> dict[str, KpiHeaderLabel]:
    labels: dict[str, KpiHeaderLabel] = {}
    for timeframe, item in comparisons.items():
        labels[timeframe] = {
            "timeframe": timeframe,
            "current_start_month": item["current_start_month"],
            "current_end_month": item["current_end_month"],
            "previous_start_month": item["previous_start_month"],
            "previous_end_month": item["previous_end_month"],
            "current_month_count": item["current_month_count"],
            "previous_month_count": item["previous_month_count"],
            "text": header_label_text(item),
        }
    return labels


def _card(card_id: str, label: str, current: float, previous: float, fmt: str) -> KpiCard:
    return {
        "id": card_id,
        "label": label,
        "value": utils.round2(current),
        "previous_value": utils.round2(previous),
        "delta_percent": utils.pct_delta(current, previous),
        "trend": utils.trend_from_delta(current - previous),
        "format": fmt,  # type: ignore[typeddict-item]
    }


def build_kpi_cards(current: RollupSummary, previous: RollupSummary) -> list[KpiCard]:
    """Revenue, expenses, net cash flow and savings-rate cards."""

    return [
        _card(card_id, label, current[metric], previous[metric], fmt)
        for card_id, label, metric, fmt in CARD_DEFINITIONS
    ]


def cards_for_comparison(comparison: KpiTimeframeComparison) -> list[KpiCard]:
    cards = []
    for card_id, label, metric, fmt in CARD_DEFINITIONS:
        values = comparison[metric]
        card = _card(card_id, label, values["current"], values["previous"], fmt)
        card["delta_percent"] = values["percent_change"]
        cards.append(card)
    return cards
