"""Monthly rollups: revenue, expenses, net cash flow and savings rate per month."""

from __future__ import annotations

from typing import Iterable, TypedDict

import pandas as pd

from . import features, utils


class MonthlyRollup(TypedDict):
    month: str
    revenue: float
    expenses: float
    net_cash_flow: float
    savings_rate: float
    transaction_count: int


def compute_monthly_rollups(
    transactions: Iterable[object] | pd.DataFrame,
    cash_flow_mode: str = "operating",
) -> list[MonthlyRollup]:
    """Aggregate transactions into one rollup per month, oldest first.

    In ``operating`` mode capital-distribution expenses are left out of net
    cash flow (they still count towards ``expenses``); ``total`` mode nets
    every expense.
    """

    mode = utils.validate_cash_flow_mode(cash_flow_mode)
    df = features.add_engineered_features(transactions)
    if df.empty:
        return []

    df["revenue"] = df["amount"].where(df["is_income"], 0.0)
    df["expenses"] = df["amount"].where(df["is_expense"], 0.0)
    df["capital_distribution"] = df["amount"].where(df["is_capital_distribution"], 0.0)

    grouped = df.groupby("month", sort=True).agg(
        revenue=("revenue", "sum"),
        expenses=("expenses", "sum"),
        capital_distribution=("capital_distribution", "sum"),
        transaction_count=("amount", "size"),
    )

    rollups: list[MonthlyRollup] = []
    for month, row in grouped.iterrows():
        revenue = float(row["revenue"])
        expenses = float(row["expenses"])
        effective_expenses = expenses - float(row["capital_distribution"]) if mode == "operating" else expenses
        net_cash_flow = revenue - effective_expenses
        rollups.append(
            {
                "month": str(month),
                "revenue": utils.round2(revenue),
                "expenses": utils.round2(expenses),
                "net_cash_flow": utils.round2(net_cash_flow),
                "savings_rate": utils.round2(utils.savings_rate(revenue, net_cash_flow)),
                "transaction_count": int(row["transaction_count"]),
            }
        )

    rollups.sort(key=lambda rollup: rollup["month"])
    return rollups
