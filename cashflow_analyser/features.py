"""Feature engineering helpers for Cash-Flow Analyser."""

from __future__ import annotations

import re
from typing import Iterable

import pandas as pd

from . import utils

CAPITAL_DISTRIBUTION = "capital distribution"
UNKNOWN_PAYEE = "Unknown"
DEFAULT_CATEGORY = "Uncategorized"

TRANSACTION_COLUMNS = [
    "date",
    "month",
    "type",
    "amount",
    "category",
    "raw_amount",
    "payee",
    "memo",
    "account",
]

FEATURE_COLUMNS = TRANSACTION_COLUMNS + [
    "is_income",
    "is_expense",
    "is_capital_distribution",
    "payee_label",
]


def is_capital_distribution(category: str) -> bool:
    """Match ``capital distribution`` as a whole category or a ``:`` segment.

    Case and punctuation are ignored, so ``Equity: Capital-Distribution``
    matches while ``Capital Distributions`` does not.
    """

    normalised = re.sub(r"[^a-z0-9: ]", " ", str(category or "").lower())
    normalised = re.sub(r"\s+", " ", normalised).strip()
    if not normalised:
        return False
    if normalised == CAPITAL_DISTRIBUTION:
        return True
    return any(segment.strip() == CAPITAL_DISTRIBUTION for segment in normalised.split(":"))


def _clean_label(series: pd.Series, fallback: str) -> pd.Series:
    cleaned = series.fillna("").astype(str).str.strip()
    return cleaned.mask(cleaned == "", fallback)


def add_engineered_features(transactions: Iterable[object] | pd.DataFrame) -> pd.DataFrame:
    """Return the transaction frame used by every aggregation."""

    df = utils.ensure_dataframe(transactions)
    for column in TRANSACTION_COLUMNS:
        if column not in df:
            df[column] = pd.Series(dtype=object)

    if df.empty:
        return pd.DataFrame(columns=FEATURE_COLUMNS)

    df["month"] = df["month"].astype(str)
    df["amount"] = df["amount"].astype(float)
    df["is_income"] = df["type"] == "income"
    df["is_expense"] = ~df["is_income"]
    df["category"] = _clean_label(df["category"], DEFAULT_CATEGORY)
    df["payee_label"] = _clean_label(df["payee"], UNKNOWN_PAYEE)
    df["is_capital_distribution"] = df["is_expense"] & df["category"].map(is_capital_distribution)

    return df
