"""What-if projection from the trailing three-month baseline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence, TypedDict

from . import months, utils
from .series import TrendPoint

BASELINE_MONTHS = 3


@dataclass(frozen=True)
class ScenarioInput:
    revenue_growth_pct: float = 4.0
    expense_reduction_pct: float = 3.0
    months: int = 12


class ScenarioPoint(TypedDict):
    month: str
    projected_revenue: float
    projected_expense: float
    projected_net: float
    cumulative_net: float


def scenario_baseline(rollups: Sequence[Mapping[str, object]]) -> tuple[float, float] | None:
    """Average revenue and expenses over the last three rollups."""

    window = list(rollups)[-BASELINE_MONTHS:]
    if not window:
        return None
    revenue = sum(float(rollup["revenue"]) for rollup in window) / len(window)  # type: ignore[arg-type]
    expenses = sum(float(rollup["expenses"]) for rollup in window) / len(window)  # type: ignore[arg-type]
    return revenue, expenses


def project_scenario(model: Mapping[str, object], scenario: ScenarioInput) -> list[ScenarioPoint]:
    """Compound the baseline forward month by month.

    Month ``k`` earns ``baseline_revenue * (1 + growth) ** k`` and spends
    ``baseline_expense * (1 - reduction) ** k``. Percentages are not range
    checked.
    """

    latest = model.get("latest_month")
    rollups = model.get("monthly_rollups") or []
    baseline = scenario_baseline(rollups)  # type: ignore[arg-type]
    if not latest or baseline is None or months.parse_month(str(latest)) is None:
        return []

    baseline_revenue, baseline_expense = baseline
    growth = 1 + scenario.revenue_growth_pct / 100
    decay = 1 - scenario.expense_reduction_pct / 100

    points: list[ScenarioPoint] = []
    cumulative = 0.0
    for offset in range(1, int(scenario.months) + 1):
        revenue = utils.round2(baseline_revenue * growth ** offset)
        expense = utils.round2(baseline_expense * decay ** offset)
        net = utils.round2(revenue - expense)
        cumulative = utils.round2(cumulative + net)
        points.append(
            {
                "month": months.add_months(str(latest), offset),
                "projected_revenue": revenue,
                "projected_expense": expense,
                "projected_net": net,
                "cumulative_net": cumulative,
            }
        )
    return points


def scenario_trend(points: Sequence[ScenarioPoint]) -> list[TrendPoint]:
    return [
        {
            "month": point["month"],
            "income": point["projected_revenue"],
            "expense": point["projected_expense"],
            "net": point["projected_net"],
        }
        for point in points
    ]
