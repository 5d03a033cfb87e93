"""Consistency report for a computed dashboard model."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Literal, TypedDict

from . import features
from .dashboard import DashboardModel

logger = logging.getLogger(__name__)

NET_TOLERANCE = 0.011


class DebugReport(TypedDict):
    verdict: Literal["OK", "FAIL"]
    checks_run: int
    failure_reasons: list[str]
    latest_month_from_rollups: str
    max_month_from_transactions: str


def _finite(*values: float) -> bool:
    return all(isinstance(value, (int, float)) and math.isfinite(value) for value in values)


def build_debug_report(model: DashboardModel, transactions: Iterable[object]) -> DebugReport:
    """Re-check the invariants the model promises to its consumers."""

    frame = features.add_engineered_features(transactions)
    max_month = str(frame["month"].max()) if not frame.empty else ""
    failures: list[str] = []
    checks = 0

    checks += 1
    if model["latest_month"] != max_month:
        failures.append("Latest month in rollups does not match max month from transactions.")

    checks += 1
    counted = sum(rollup["transaction_count"] for rollup in model["monthly_rollups"])
    if counted != len(frame):
        failures.append(f"Rollups count {counted} transaction(s) but {len(frame)} were supplied.")

    for rollup in model["monthly_rollups"]:
        checks += 1
        if model["cash_flow_mode"] == "total":
            expected = rollup["revenue"] - rollup["expenses"]
            if abs(rollup["net_cash_flow"] - expected) > NET_TOLERANCE:
                failures.append(f"Rollup {rollup['month']} net cash flow differs from revenue - expenses.")
        elif rollup["net_cash_flow"] + NET_TOLERANCE < rollup["revenue"] - rollup["expenses"]:
            failures.append(f"Rollup {rollup['month']} operating net is below total net.")

    for timeframe, row in model["kpi_aggregation_by_timeframe"].items():
        checks += 1
        if row["month_count"] > 0 and (not row["start_month"] or not row["end_month"]):
            failures.append(f"Timeframe {timeframe} has months but missing start/end month labels.")
        if not _finite(row["revenue"], row["expenses"], row["net_cash_flow"], row["savings_rate"]):
            failures.append(f"Timeframe {timeframe} has non-finite KPI totals.")

    for timeframe, comparison in model["kpi_comparison_by_timeframe"].items():
        for metric in ("revenue", "expenses", "net_cash_flow", "savings_rate"):
            checks += 1
            values = comparison[metric]
            if not _finite(values["current"], values["previous"], values["delta"]):
                failures.append(f"Comparison {timeframe} has non-finite {metric} values.")
            if values["previous"] == 0 and values["percent_change"] is not None:
                failures.append(f"Comparison {timeframe} has percent change for {metric} while previous is 0.")

    for signal in model["trajectory_signals"]:
        checks += 1
        if not signal["has_sufficient_history"] and signal["light"] != "neutral":
            failures.append(f"Trajectory {signal['id']} should be neutral when history is insufficient.")
        if signal["percent_change"] is not None and not _finite(signal["percent_change"]):
            failures.append(f"Trajectory {signal['id']} has non-finite percent change.")

    checks += 1
    projected = [point["month"] for point in model["cash_flow_forecast"]["points"] if point["status"] == "projected"]
    if any(later <= earlier for earlier, later in zip(projected, projected[1:])):
        failures.append("Projected forecast months are not strictly increasing.")

    return {
        "verdict": "OK" if not failures else "FAIL",
        "checks_run": checks,
        "failure_reasons": failures,
        "latest_month_from_rollups": model["latest_month"],
        "max_month_from_transactions": max_month,
    }


def log_debug_report(report: DebugReport) -> None:
    if report["verdict"] == "OK":
        logger.info("Dashboard consistency OK (%d checks)", report["checks_run"])
        return
    logger.warning(
        "Dashboard consistency FAIL: %d of %d checks",
        len(report["failure_reasons"]),
        report["checks_run"],
    )
    for reason in report["failure_reasons"]:
        logger.warning("- %s", reason)
