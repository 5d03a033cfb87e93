"""Category and payee analytics for the latest month, plus narrative helpers."""

from __future__ import annotations

from typing import Sequence, TypedDict

import pandas as pd

from . import months, utils
from .kpis import KpiCard
from .rollups import MonthlyRollup

EXPENSE_COLORS = ("#76a8ff", "#5e84f1", "#4f6fdd", "#3f58c1", "#2f479f", "#243b82", "#1b2f67")

MAX_EXPENSE_SLICES = 7
MAX_TOP_PAYEES = 8
MAX_MOVERS = 8
MAX_OPPORTUNITIES = 8
BASELINE_MONTHS = 3
OVERRUN_THRESHOLD = 50.0
FALLBACK_SAVINGS_SHARE = 0.03
DIG_HERE_PREVIEW = 4


class ExpenseSlice(TypedDict):
    name: str
    value: float
    share: float
    color: str


class PayeeTotal(TypedDict):
    payee: str
    amount: float
    transaction_count: int


class Mover(TypedDict):
    category: str
    current: float
    previous: float
    delta: float
    delta_percent: float | None


class Opportunity(TypedDict):
    title: str
    savings: float
    hint: str


class SustainabilityIndicator(TypedDict):
    label: str
    value: str


def _expenses(frame: pd.DataFrame) -> pd.DataFrame:
    if frame.empty:
        return frame
    return frame.loc[frame["is_expense"]]


def category_totals(frame: pd.DataFrame) -> dict[str, float]:
    """Expense totals per category, in first-seen order."""

    spend = _expenses(frame)
    if spend.empty:
        return {}
    totals = spend.groupby("category", sort=False)["amount"].sum()
    return {str(name): float(value) for name, value in totals.items()}


def _rank(totals: dict[str, float], limit: int) -> list[tuple[str, float]]:
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)[:limit]


def build_expense_slices(latest_frame: pd.DataFrame) -> list[ExpenseSlice]:
    """Top categories of the month, shares relative to the slices shown."""

    top = _rank(category_totals(latest_frame), MAX_EXPENSE_SLICES)
    shown_total = sum(value for _, value in top)
    return [
        {
            "name": name,
            "value": utils.round2(value),
            "share": value / shown_total if shown_total > utils.EPSILON else 0.0,
            "color": EXPENSE_COLORS[index % len(EXPENSE_COLORS)],
        }
        for index, (name, value) in enumerate(top)
    ]


def build_top_payees(latest_frame: pd.DataFrame) -> list[PayeeTotal]:
    spend = _expenses(latest_frame)
    if spend.empty:
        return []
    grouped = spend.groupby("payee_label", sort=False)["amount"].agg(["sum", "size"])
    ranked = grouped.sort_values("sum", ascending=False, kind="stable").head(MAX_TOP_PAYEES)
    return [
        {
            "payee": str(payee),
            "amount": utils.round2(row["sum"]),
            "transaction_count": int(row["size"]),
        }
        for payee, row in ranked.iterrows()
    ]


def build_movers(current_frame: pd.DataFrame, previous_frame: pd.DataFrame) -> list[Mover]:
    """Categories whose spend moved most between two months."""

    current_totals = category_totals(current_frame)
    previous_totals = category_totals(previous_frame)
    categories = list(current_totals) + [name for name in previous_totals if name not in current_totals]

    movers: list[Mover] = []
    for category in categories:
        current = utils.round2(current_totals.get(category, 0.0))
        previous = utils.round2(previous_totals.get(category, 0.0))
        movers.append(
            {
                "category": category,
                "current": current,
                "previous": previous,
                "delta": utils.round2(current - previous),
                "delta_percent": utils.pct_delta(current, previous),
            }
        )

    movers.sort(key=lambda mover: abs(mover["delta"]), reverse=True)
    return movers[:MAX_MOVERS]


def category_baseline(
    frame: pd.DataFrame,
    rollups: Sequence[MonthlyRollup],
    category: str,
    latest_month: str,
) -> float:
    """Mean monthly spend on ``category`` over up to 3 months before ``latest_month``."""

    prior_months = [rollup["month"] for rollup in rollups if rollup["month"] < latest_month][-BASELINE_MONTHS:]
    if not prior_months:
        return 0.0
    spend = _expenses(frame)
    if spend.empty:
        return 0.0
    mask = (spend["category"] == category) & spend["month"].isin(prior_months)
    return float(spend.loc[mask, "amount"].sum()) / len(prior_months)


def build_opportunities(
    frame: pd.DataFrame,
    rollups: Sequence[MonthlyRollup],
    latest_month: str | None,
) -> list[Opportunity]:
    """Categories running above their own recent baseline, largest first."""

    if not latest_month or frame.empty:
        return []
    latest_frame = frame.loc[frame["month"] == latest_month]
    if latest_frame.empty:
        return []

    candidates: list[Opportunity] = []
    for category, current_total in category_totals(latest_frame).items():
        overrun = current_total - category_baseline(frame, rollups, category, latest_month)
        if overrun > OVERRUN_THRESHOLD:
            candidates.append(
                {
                    "title": f"Control {category}",
                    "savings": utils.round2(overrun),
                    "hint": f"Current month is {utils.format_currency(overrun)} above recent baseline.",
                }
            )

    if not candidates:
        latest_spend = float(_expenses(latest_frame)["amount"].sum())
        return [
            {
                "title": "Tighten discretionary spend",
                "savings": utils.round2(latest_spend * FALLBACK_SAVINGS_SHARE),
                "hint": "A 3% trim in discretionary categories is a reasonable first target.",
            }
        ]

    candidates.sort(key=lambda item: item["savings"], reverse=True)
    return candidates[:MAX_OPPORTUNITIES]


def build_summary_bullets(
    latest: MonthlyRollup,
    previous: MonthlyRollup | None,
    opportunities: Sequence[Opportunity],
    transaction_count: int,
) -> list[str]:
    net_word = "positive" if latest["net_cash_flow"] >= 0 else "negative"
    bullets = [
        f"Processed {transaction_count:,} transactions through {months.month_label(latest['month'])} "
        f"with net {net_word} cash flow."
    ]

    if previous is not None:
        change = latest["revenue"] - previous["revenue"]
        direction = "up" if change >= 0 else "down"
        bullets.append(
            f"Revenue moved {direction} {utils.format_currency(abs(change), decimals=0)} "
            f"versus {months.month_label(previous['month'])}."
        )

    net_change = latest["net_cash_flow"] - previous["net_cash_flow"] if previous else latest["net_cash_flow"]
    top_savings = sum(item["savings"] for item in opportunities[:1])
    bullets.append(
        f"Net cash trend is {'improving' if net_change >= 0 else 'softening'} and top action could recover "
        f"{utils.format_currency(top_savings, decimals=0)}."
    )
    return bullets


def build_sustainability(
    cards: Sequence[KpiCard],
    latest: MonthlyRollup | None,
    month_count: int,
) -> list[SustainabilityIndicator]:
    trends = {card["id"]: card["trend"] for card in cards}
    net = latest["net_cash_flow"] if latest else 0.0
    return [
        {
            "label": "Revenue Momentum",
            "value": "Getting Better" if trends.get("income") == "up" else "Getting Worse",
        },
        {
            "label": "Cost Discipline",
            "value": "Getting Better" if trends.get("expense") == "down" else "Needs Attention",
        },
        {"label": "Net Cash Position", "value": "Healthy" if net >= 0 else "Negative"},
        {
            "label": "Consistency",
            "value": "Long-term Visible" if month_count >= 6 else "Need More History",
        },
    ]
