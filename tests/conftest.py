from __future__ import annotations

from datetime import date
from typing import Callable, Sequence

import pytest

from cashflow_analyser import months
from cashflow_analyser.rollups import MonthlyRollup
from cashflow_analyser.transactions import Transaction


def _rollups(
    revenues: Sequence[float],
    expenses: Sequence[float],
    start: str = "2023-01",
) -> list[MonthlyRollup]:
    rows: list[MonthlyRollup] = []
    for offset, (revenue, expense) in enumerate(zip(revenues, expenses)):
        net = revenue - expense
        rows.append(
            {
                "month": months.add_months(start, offset),
                "revenue": float(revenue),
                "expenses": float(expense),
                "net_cash_flow": float(net),
                "savings_rate": net / revenue * 100 if revenue else 0.0,
                "transaction_count": 2,
            }
        )
    return rows


@pytest.fixture
def make_rollups() -> Callable[..., list[MonthlyRollup]]:
    return _rollups


@pytest.fixture
def two_month_ledger() -> list[Transaction]:
    return [
        Transaction.from_raw(date(2024, 1, 2), 5000, "Salary", payee="Acme"),
        Transaction.from_raw(date(2024, 1, 3), -3000, "Rent", payee="Landlord"),
        Transaction.from_raw(date(2024, 2, 2), 5200, "Salary", payee="Acme"),
        Transaction.from_raw(date(2024, 2, 3), -3100, "Rent", payee="Landlord"),
    ]
