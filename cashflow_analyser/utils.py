"""Shared utilities for the Cash-Flow Analyser project."""

from __future__ import annotations

import dataclasses
from typing import Iterable, Literal, Mapping

import pandas as pd

EPSILON = 0.00001

CashFlowMode = Literal["operating", "total"]
TrendDirection = Literal["up", "down", "flat"]

CASH_FLOW_MODES: tuple[str, ...] = ("operating", "total")


def ensure_dataframe(transactions: Iterable[object] | pd.DataFrame) -> pd.DataFrame:
    """Ensure the input payload is normalised to a :class:`pandas.DataFrame`.

    Accepts an existing frame, mappings, or dataclass instances such as
    :class:`~cashflow_analyser.transactions.Transaction`.
    """

    if isinstance(transactions, pd.DataFrame):
        return transactions.copy()

    rows = [
        dataclasses.asdict(item) if dataclasses.is_dataclass(item) else dict(item)  # type: ignore[arg-type]
        for item in transactions
    ]
    return pd.DataFrame(rows)


def validate_cash_flow_mode(mode: str) -> CashFlowMode:
    if mode not in CASH_FLOW_MODES:
        raise ValueError(f"cash_flow_mode must be one of {CASH_FLOW_MODES}, got {mode!r}")
    return mode  # type: ignore[return-value]


def round2(value: float) -> float:
    return round(float(value), 2)


def pct_delta(current: float, previous: float) -> float | None:
    """Relative change in percent, or ``None`` when there is no usable baseline."""

    if abs(previous) <= EPSILON:
        return None
    return (current - previous) / abs(previous) * 100.0


def trend_from_delta(delta: float) -> TrendDirection:
    if abs(delta) <= EPSILON:
        return "flat"
    return "up" if delta > 0 else "down"


def savings_rate(revenue: float, net_cash_flow: float) -> float:
    return net_cash_flow / revenue * 100.0 if revenue > EPSILON else 0.0


def format_currency(value: float, currency: str = "$", decimals: int = 2) -> str:
    """Return a human-readable currency string."""

    sign = "-" if value < 0 else ""
    return f"{sign}{currency}{abs(value):,.{decimals}f}"


def format_percent(value: float | None) -> str:
    """Signed percentage, ``n/a`` when the comparison has no baseline."""

    if value is None:
        return "n/a"
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.1f}%"


def to_camel_keys(payload: object) -> object:
    """Recursively convert ``snake_case`` mapping keys to ``camelCase``."""

    if isinstance(payload, Mapping):
        return {_camel(str(key)): to_camel_keys(value) for key, value in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [to_camel_keys(item) for item in payload]
    return payload


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)
