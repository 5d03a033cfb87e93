"""Trend and seasonality models behind the cash-flow forecast.

Revenue and expenses are each fitted with either a least-squares linear trend
or a flat rolling average, whichever the confidence rule allows. Expenses may
additionally carry a per-calendar-month seasonal adjustment. The thresholds
below are product-tuned policy values; tests pin them as current behaviour.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import asdict, dataclass, field
from typing import Literal, Sequence, TypedDict

import numpy as np
import pandas as pd

from . import months, utils
from .rollups import MonthlyRollup

logger = logging.getLogger(__name__)

MIN_LINEAR_MONTHS = 6
MIN_LINEAR_R_SQUARED = 0.35
MIN_SLOPE_RANGE_SHARE = 0.03
MIN_SLOPE_BASELINE_SHARE = 0.005
MIN_SLOPE_ABSOLUTE = 1.0
ROLLING_WINDOW = 3
REPORTING_SLOPE_MONTHS = 6

SEASONAL_MIN_MONTHS = 18
SEASONAL_MIN_DISTINCT_MONTHS = 10
SEASONAL_MIN_STRENGTH = 0.45
SEASONAL_MIN_AUTOCORRELATION = 0.35
SEASONAL_LAG = 12

FORECAST_HORIZON_MONTHS = 36

VOLATILITY_WINDOW = 12
MARGIN_MIN_MONTHS = 6
REVENUE_VOLATILITY_THRESHOLDS = (0.05, 0.10, 0.15, 0.20, 0.30, 0.40, 0.55, 0.75)
REVENUE_MARGINS = (0, -5, -10, -15, -20, -25, -30, -35, -40)
EXPENSE_VOLATILITY_THRESHOLDS = (0.05, 0.10, 0.20, 0.35)
EXPENSE_MARGINS = (0, 5, 10, 15, 20)

TrendKind = Literal["linear-trend", "rolling-average"]
ForecastStatus = Literal["actual", "projected"]


@dataclass(frozen=True)
class LinearFit:
    slope: float
    intercept: float
    r_squared: float

    def value_at(self, index: float) -> float:
        return self.intercept + self.slope * index


@dataclass(frozen=True)
class TrendModel:
    """Fitted model for one monthly series.

    ``slope`` is the slope reported to users: the regression slope for a
    linear trend, the average recent month-over-month change otherwise.
    """

    kind: TrendKind
    observations: int
    slope: float
    regression_slope: float
    intercept: float
    r_squared: float
    baseline: float

    def project(self, offset: int) -> float:
        """Value ``offset`` months after the last observation."""

        if self.kind == "linear-trend":
            return self.intercept + self.regression_slope * (self.observations - 1 + offset)
        return self.baseline


@dataclass(frozen=True)
class SeasonalityProfile:
    detected: bool
    adjustments: dict[int, float] = field(default_factory=dict)
    group_sizes: dict[int, int] = field(default_factory=dict)
    strength: float = 0.0
    autocorrelation: float = 0.0
    history_months: int = 0
    distinct_months: int = 0
    reason: str = ""

    def adjustment_for(self, month: str) -> float:
        if not self.detected:
            return 0.0
        number = months.month_number(month)
        return self.adjustments.get(number, 0.0) if number else 0.0


class ForecastPoint(TypedDict):
    month: str
    revenue: float
    expenses: float
    net_cash_flow: float
    status: ForecastStatus


class ForecastMargins(TypedDict):
    revenue_margin_pct: int
    expense_margin_pct: int
    revenue_volatility: float | None
    expense_volatility: float | None
    history_months: int
    note: str


class CashFlowForecast(TypedDict):
    points: list[ForecastPoint]
    horizon_months: int
    revenue_model: dict
    expense_model: dict
    seasonality: dict
    revenue_note: str
    expense_note: str
    margins: ForecastMargins


def fit_linear_regression(values: Sequence[float]) -> LinearFit:
    """Ordinary least squares of ``values`` against indices ``0..n-1``."""

    y = np.asarray(values, dtype=float)
    n = y.size
    if n == 0:
        return LinearFit(0.0, 0.0, 0.0)
    if n == 1:
        return LinearFit(0.0, float(y[0]), 0.0)

    x = np.arange(n, dtype=float)
    x_centred = x - x.mean()
    y_mean = y.mean()
    slope = float((x_centred * (y - y_mean)).sum() / (x_centred ** 2).sum())
    intercept = float(y_mean - slope * x.mean())

    fitted = intercept + slope * x
    ss_total = float(((y - y_mean) ** 2).sum())
    ss_residual = float(((y - fitted) ** 2).sum())
    r_squared = 1.0 - ss_residual / ss_total if ss_total > utils.EPSILON else 0.0
    return LinearFit(slope, intercept, max(0.0, r_squared))


def rolling_baseline(values: Sequence[float], window: int = ROLLING_WINDOW) -> float:
    tail = list(values)[-min(window, len(values)):] if values else []
    return float(np.mean(tail)) if tail else 0.0


def reporting_slope(values: Sequence[float], months_back: int = REPORTING_SLOPE_MONTHS) -> float:
    tail = np.asarray(list(values)[-months_back:], dtype=float)
    if tail.size < 2:
        return 0.0
    return float(np.diff(tail).mean())


def minimum_meaningful_slope(values: Sequence[float], baseline: float) -> float:
    value_range = float(max(values) - min(values)) if len(values) else 0.0
    return max(
        MIN_SLOPE_RANGE_SHARE * value_range,
        MIN_SLOPE_BASELINE_SHARE * abs(baseline),
        MIN_SLOPE_ABSOLUTE,
    )


def fit_trend(values: Sequence[float]) -> TrendModel:
    """Choose a linear trend when it is confident enough, else a rolling average."""

    series = [float(value) for value in values]
    fit = fit_linear_regression(series)
    baseline = rolling_baseline(series)
    use_linear = (
        len(series) >= MIN_LINEAR_MONTHS
        and fit.r_squared >= MIN_LINEAR_R_SQUARED
        and abs(fit.slope) >= minimum_meaningful_slope(series, baseline)
    )
    return TrendModel(
        kind="linear-trend" if use_linear else "rolling-average",
        observations=len(series),
        slope=fit.slope if use_linear else reporting_slope(series),
        regression_slope=fit.slope,
        intercept=fit.intercept,
        r_squared=fit.r_squared,
        baseline=baseline,
    )


def lag_autocorrelation(values: Sequence[float], lag: int = SEASONAL_LAG) -> float:
    x = np.asarray(values, dtype=float)
    if lag <= 0 or x.size <= lag:
        return 0.0
    centred = x - x.mean()
    denominator = float((centred ** 2).sum())
    if denominator <= utils.EPSILON:
        return 0.0
    return float((centred[lag:] * centred[:-lag]).sum() / denominator)


def detect_seasonality(month_keys: Sequence[str], values: Sequence[float]) -> SeasonalityProfile:
    """Per-calendar-month adjustments from linear-regression residuals.

    Adjustments are re-centred so their mean, weighted by how many months
    fall in each group, is zero; the trend keeps the level and seasonality
    only redistributes it.
    """

    y = np.asarray(values, dtype=float)
    n = y.size
    if n == 0:
        return SeasonalityProfile(detected=False, reason="no history yet")

    fit = fit_linear_regression(y)
    residuals = y - (fit.intercept + fit.slope * np.arange(n, dtype=float))

    frame = pd.DataFrame(
        {
            "number": [months.month_number(key) for key in month_keys],
            "residual": residuals,
        }
    ).dropna(subset=["number"])
    if frame.empty:
        return SeasonalityProfile(detected=False, history_months=n, reason="month keys are not calendar months")
    frame["number"] = frame["number"].astype(int)

    groups = frame.groupby("number")["residual"].agg(["mean", "size"])
    weighted_mean = float((groups["mean"] * groups["size"]).sum() / groups["size"].sum())
    adjustments = groups["mean"] - weighted_mean

    remaining = frame["residual"] - frame["number"].map(adjustments)
    noise = float(np.std(remaining.to_numpy()))
    strength = float(np.std(adjustments.to_numpy())) / max(noise, utils.EPSILON)
    autocorrelation = lag_autocorrelation(residuals)
    distinct = int(len(groups))

    if n < SEASONAL_MIN_MONTHS:
        reason = f"needs {SEASONAL_MIN_MONTHS} months of history, found {n}"
    elif distinct < SEASONAL_MIN_DISTINCT_MONTHS:
        reason = f"only {distinct} distinct calendar months observed"
    elif strength < SEASONAL_MIN_STRENGTH and autocorrelation < SEASONAL_MIN_AUTOCORRELATION:
        reason = f"pattern too weak (strength {strength:.2f}, lag-12 autocorrelation {autocorrelation:.2f})"
    else:
        reason = ""

    return SeasonalityProfile(
        detected=not reason,
        adjustments={int(number): float(value) for number, value in adjustments.items()},
        group_sizes={int(number): int(size) for number, size in groups["size"].items()},
        strength=strength,
        autocorrelation=autocorrelation,
        history_months=n,
        distinct_months=distinct,
        reason=reason or "recurring monthly pattern detected",
    )


def volatility_score(values: Sequence[float]) -> float:
    """``0.6 * coefficient of variation + 0.4 * mean |month-over-month change|``."""

    x = np.asarray(values, dtype=float)
    if x.size == 0:
        return 0.0
    mean = float(x.mean())
    variation = float(x.std()) / abs(mean) if abs(mean) > utils.EPSILON else 0.0

    previous, current = x[:-1], x[1:]
    usable = np.abs(previous) > utils.EPSILON
    if usable.any():
        change = float(np.mean(np.abs(current[usable] - previous[usable]) / np.abs(previous[usable])))
    else:
        change = 0.0
    return 0.6 * variation + 0.4 * change


def suggest_margins(rollups: Sequence[MonthlyRollup]) -> ForecastMargins:
    """Suggested haircut on projected revenue and buffer on projected expenses."""

    history = len(rollups)
    if history < MARGIN_MIN_MONTHS:
        return {
            "revenue_margin_pct": 0,
            "expense_margin_pct": 0,
            "revenue_volatility": None,
            "expense_volatility": None,
            "history_months": history,
            "note": (
                f"Margins need at least {MARGIN_MIN_MONTHS} months of history "
                f"({history} available); using 0% for both."
            ),
        }

    recent = list(rollups)[-VOLATILITY_WINDOW:]
    revenue_score = volatility_score([rollup["revenue"] for rollup in recent])
    expense_score = volatility_score([rollup["expenses"] for rollup in recent])
    revenue_margin = REVENUE_MARGINS[bisect.bisect_right(REVENUE_VOLATILITY_THRESHOLDS, revenue_score)]
    expense_margin = EXPENSE_MARGINS[bisect.bisect_right(EXPENSE_VOLATILITY_THRESHOLDS, expense_score)]
    return {
        "revenue_margin_pct": revenue_margin,
        "expense_margin_pct": expense_margin,
        "revenue_volatility": round(revenue_score, 4),
        "expense_volatility": round(expense_score, 4),
        "history_months": history,
        "note": (
            f"Over the last {len(recent)} months revenue volatility is {revenue_score:.2f} "
            f"(suggested margin {revenue_margin}%) and expense volatility is {expense_score:.2f} "
            f"(suggested margin +{expense_margin}%)."
        ),
    }


def _weak_trend_reason(model: TrendModel, values: Sequence[float]) -> str:
    if model.observations < MIN_LINEAR_MONTHS:
        return f"fewer than {MIN_LINEAR_MONTHS} months of history"
    if model.r_squared < MIN_LINEAR_R_SQUARED:
        return f"R² {model.r_squared:.2f} is below {MIN_LINEAR_R_SQUARED}"
    threshold = minimum_meaningful_slope(values, model.baseline)
    return f"slope {utils.format_currency(model.regression_slope)}/month is under {utils.format_currency(threshold)}"


def describe_trend(label: str, model: TrendModel, values: Sequence[float]) -> str:
    """One-sentence explanation of the model chosen for a series."""

    if model.observations == 0:
        return f"{label}: no history yet, projected at zero."
    if model.kind == "linear-trend":
        direction = "rising" if model.slope > 0 else "falling"
        return (
            f"{label}: linear trend over {model.observations} months (R² {model.r_squared:.2f}), "
            f"{direction} {utils.format_currency(abs(model.slope))} per month."
        )
    window = min(ROLLING_WINDOW, model.observations)
    return (
        f"{label}: held at the {window}-month average of {utils.format_currency(model.baseline)} "
        f"({_weak_trend_reason(model, values)}); recent months moved "
        f"{utils.format_currency(model.slope)} per month on average."
    )


def build_cash_flow_forecast(
    rollups: Sequence[MonthlyRollup],
    horizon: int = FORECAST_HORIZON_MONTHS,
) -> CashFlowForecast:
    """Actual rollups followed by ``horizon`` projected months (at most 36)."""

    horizon = max(0, min(int(horizon), FORECAST_HORIZON_MONTHS))
    month_keys = [rollup["month"] for rollup in rollups]
    revenue_values = [rollup["revenue"] for rollup in rollups]
    expense_values = [rollup["expenses"] for rollup in rollups]

    revenue_model = fit_trend(revenue_values)
    expense_model = fit_trend(expense_values)
    seasonality = detect_seasonality(month_keys, expense_values)

    points: list[ForecastPoint] = [
        {
            "month": rollup["month"],
            "revenue": rollup["revenue"],
            "expenses": rollup["expenses"],
            "net_cash_flow": rollup["net_cash_flow"],
            "status": "actual",
        }
        for rollup in rollups
    ]

    latest = month_keys[-1] if month_keys else None
    if latest is not None and months.parse_month(latest) is not None:
        for offset in range(1, horizon + 1):
            month = months.add_months(latest, offset)
            revenue = utils.round2(max(0.0, revenue_model.project(offset)))
            expenses = utils.round2(
                max(0.0, expense_model.project(offset) + seasonality.adjustment_for(month))
            )
            points.append(
                {
                    "month": month,
                    "revenue": revenue,
                    "expenses": expenses,
                    "net_cash_flow": utils.round2(revenue - expenses),
                    "status": "projected",
                }
            )
    elif latest is not None:
        logger.warning("Latest month %r is not a calendar month; skipping projections", latest)

    logger.debug(
        "Forecast fitted: revenue=%s expenses=%s seasonal=%s over %d month(s)",
        revenue_model.kind,
        expense_model.kind,
        seasonality.detected,
        len(rollups),
    )

    expense_note = describe_trend("Expenses", expense_model, expense_values)
    if seasonality.detected:
        expense_note += (
            f" Seasonal adjustments applied (strength {seasonality.strength:.2f}, "
            f"lag-12 autocorrelation {seasonality.autocorrelation:.2f})."
        )
    elif rollups:
        expense_note += f" No seasonal adjustment: {seasonality.reason}."

    return {
        "points": points,
        "horizon_months": horizon,
        "revenue_model": asdict(revenue_model),
        "expense_model": asdict(expense_model),
        "seasonality": asdict(seasonality),
        "revenue_note": describe_trend("Revenue", revenue_model, revenue_values),
        "expense_note": expense_note,
        "margins": suggest_margins(rollups),
    }


def select_forecast_range(points: Sequence[ForecastPoint], months_ahead: int) -> list[ForecastPoint]:
    """All actual points plus the first ``months_ahead`` projected ones."""

    actual = [point for point in points if point["status"] == "actual"]
    projected = [point for point in points if point["status"] == "projected"]
    return actual + projected[: max(0, months_ahead)]
