"""Timeframe windows over monthly rollups and their comparison blocks."""

from __future__ import annotations

from typing import Literal, Sequence, TypedDict

from . import months
from .rollups import MonthlyRollup

KpiTimeframe = Literal[
    "this_month",
    "last_month",
    "last_3_months",
    "ytd",
    "last_12_months",
    "last_24_months",
    "last_36_months",
    "all_dates",
]

KpiComparisonTimeframe = Literal[
    "this_month",
    "last_3_months",
    "ytd",
    "ttm",
    "last_24_months",
    "last_36_months",
]

KPI_TIMEFRAMES: tuple[str, ...] = (
    "this_month",
    "last_month",
    "last_3_months",
    "ytd",
    "last_12_months",
    "last_24_months",
    "last_36_months",
    "all_dates",
)

KPI_COMPARISON_TIMEFRAMES: tuple[str, ...] = (
    "this_month",
    "last_3_months",
    "ytd",
    "ttm",
    "last_24_months",
    "last_36_months",
)

TRAILING_MONTHS = {
    "this_month": 1,
    "last_3_months": 3,
    "last_12_months": 12,
    "last_24_months": 24,
    "last_36_months": 36,
}

COMPARISON_TRAILING_MONTHS = {
    "this_month": 1,
    "last_3_months": 3,
    "ttm": 12,
    "last_24_months": 24,
    "last_36_months": 36,
}


class ComparisonBlocks(TypedDict):
    current: list[MonthlyRollup]
    previous: list[MonthlyRollup]


def latest_month(rollups: Sequence[MonthlyRollup]) -> str | None:
    return rollups[-1]["month"] if rollups else None


def previous_month(rollups: Sequence[MonthlyRollup]) -> str | None:
    return rollups[-2]["month"] if len(rollups) > 1 else None


def select_trailing(rollups: Sequence[MonthlyRollup], count: int) -> list[MonthlyRollup]:
    if count <= 0:
        return []
    return list(rollups[-count:])


def select_prior_block(rollups: Sequence[MonthlyRollup], count: int) -> list[MonthlyRollup]:
    """The ``count`` months before the trailing block, or nothing at all.

    A partial prior block would compare unequal spans, so fewer than
    ``2 * count`` months yields an empty block.
    """

    if count <= 0 or len(rollups) < count * 2:
        return []
    end = len(rollups) - count
    return list(rollups[end - count:end])


def select_year_to_date(rollups: Sequence[MonthlyRollup], year: int, through_month: int) -> list[MonthlyRollup]:
    selected = []
    for rollup in rollups:
        parsed = months.parse_month(rollup["month"])
        if parsed and parsed[0] == year and parsed[1] <= through_month:
            selected.append(rollup)
    return selected


def select_window(rollups: Sequence[MonthlyRollup], timeframe: str) -> list[MonthlyRollup]:
    """Return the rollups belonging to ``timeframe``, oldest first."""

    if timeframe not in KPI_TIMEFRAMES:
        raise ValueError(f"unknown KPI timeframe: {timeframe!r}")
    if not rollups:
        return []

    if timeframe == "all_dates":
        return list(rollups)
    if timeframe == "last_month":
        return [rollups[-2]] if len(rollups) > 1 else []
    if timeframe in TRAILING_MONTHS:
        return select_trailing(rollups, TRAILING_MONTHS[timeframe])

    parsed = months.parse_month(rollups[-1]["month"])
    if parsed is None:
        return select_trailing(rollups, 1)
    return select_year_to_date(rollups, parsed[0], parsed[1])


def select_comparison_blocks(rollups: Sequence[MonthlyRollup], timeframe: str) -> ComparisonBlocks:
    """Return the current window and the equally sized window before it."""

    if timeframe not in KPI_COMPARISON_TIMEFRAMES:
        raise ValueError(f"unknown comparison timeframe: {timeframe!r}")
    if not rollups:
        return {"current": [], "previous": []}

    count = COMPARISON_TRAILING_MONTHS.get(timeframe)
    if count is None:
        parsed = months.parse_month(rollups[-1]["month"])
        if parsed is not None:
            year, through = parsed
            return {
                "current": select_year_to_date(rollups, year, through),
                "previous": select_year_to_date(rollups, year - 1, through),
            }
        count = 1

    return {
        "current": select_trailing(rollups, count),
        "previous": select_prior_block(rollups, count),
    }
