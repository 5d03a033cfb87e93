"""Synthetic ledger generation.

The generator produces a deterministic small-business ledger with growing
revenue, winter utility peaks, a December events spike and quarterly capital
distributions, so every dashboard panel has something to show.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path

import numpy as np
import pandas as pd

from . import months
from .transactions import Transaction

DEFAULT_MONTHS = 30
DEFAULT_START = "2023-01"
DEFAULT_SEED = 7
ACCOUNT = "Operating Checking"

CSV_COLUMNS = ["Date", "Payee", "Category", "Amount", "Account", "Memo/Notes"]


@dataclass(frozen=True)
class PayeeProfile:
    """Static metadata for a recurring counterparty."""

    payee: str
    category: str
    amount_range: tuple[float, float]
    flow: str = "expense"  # "expense" or "income"
    day: int = 1
    active_months: tuple[int, ...] = ()
    monthly_growth: float = 0.0


CATALOGUE = (
    PayeeProfile("Membership Dues", "Revenue: Memberships", (14_000.0, 15_000.0), flow="income", day=3, monthly_growth=0.015),
    PayeeProfile("Private Lessons", "Revenue: Lessons", (2_500.0, 3_600.0), flow="income", day=15, monthly_growth=0.01),
    PayeeProfile("Seminar Fees", "Revenue: Events", (1_800.0, 2_600.0), flow="income", day=20, active_months=(3, 6, 9, 11)),
    PayeeProfile("Harbor Property Group", "Rent", (4_200.0, 4_200.0), day=1),
    PayeeProfile("Gusto Payroll", "Payroll", (6_800.0, 7_400.0), day=28, monthly_growth=0.008),
    PayeeProfile("City Power & Light", "Utilities", (380.0, 460.0), day=12),
    PayeeProfile("Comcast Business", "Utilities", (140.0, 140.0), day=18),
    PayeeProfile("Hartford Insurance", "Insurance", (2_400.0, 2_700.0), day=10, active_months=(1,)),
    PayeeProfile("Meta Ads", "Marketing", (350.0, 900.0), day=7),
    PayeeProfile("Fuji Mats Supply", "Equipment", (150.0, 1_200.0), day=21),
    PayeeProfile("Holiday Events Co", "Events", (2_000.0, 2_800.0), day=14, active_months=(12,)),
    PayeeProfile("Owner Draw", "Equity: Capital Distribution", (3_000.0, 4_000.0), day=30, active_months=(3, 6, 9, 12)),
)

SUPPLY_PAYEES = ("Costco", "Amazon", "Staples", None)
WINTER_UTILITY_FACTOR = {1: 1.45, 2: 1.35, 12: 1.3, 7: 1.2, 8: 1.2}


def _amount(profile: PayeeProfile, offset: int, month_number: int, rng: np.random.Generator) -> float:
    low, high = profile.amount_range
    value = rng.uniform(low, high) * (1 + profile.monthly_growth) ** offset
    if profile.payee == "City Power & Light":
        value *= WINTER_UTILITY_FACTOR.get(month_number, 1.0)
    return round(value, 2)


def _month_transactions(month: str, offset: int, rng: np.random.Generator) -> list[Transaction]:
    year, number = months.parse_month(month)  # type: ignore[misc]
    last_day = months.days_in_month(month)
    rows: list[Transaction] = []

    for profile in CATALOGUE:
        if profile.active_months and number not in profile.active_months:
            continue
        magnitude = _amount(profile, offset, number, rng)
        raw = magnitude if profile.flow == "income" else -magnitude
        posted = date(year, number, min(profile.day, last_day))
        rows.append(
            Transaction.from_raw(
                posted,
                raw,
                profile.category,
                payee=profile.payee,
                account=ACCOUNT,
                id=f"{posted.isoformat()}|{profile.payee}",
            )
        )

    for index in range(int(rng.poisson(4))):
        payee = SUPPLY_PAYEES[int(rng.integers(0, len(SUPPLY_PAYEES)))]
        posted = date(year, number, int(rng.integers(1, last_day + 1)))
        rows.append(
            Transaction.from_raw(
                posted,
                -round(float(rng.uniform(20.0, 260.0)), 2),
                "Supplies",
                payee=payee,
                account=ACCOUNT,
                id=f"{posted.isoformat()}|supplies|{index}",
            )
        )
    return rows


def generate_transactions(
    months_count: int = DEFAULT_MONTHS,
    *,
    seed: int | None = DEFAULT_SEED,
    start: str = DEFAULT_START,
) -> list[Transaction]:
    """Generate a deterministic ledger covering ``months_count`` months."""

    if months_count <= 0:
        raise ValueError("months_count must be positive")
    if months.parse_month(start) is None:
        raise ValueError(f"start must be a YYYY-MM month, got {start!r}")

    rng = np.random.default_rng(seed)
    transactions: list[Transaction] = []
    for offset in range(months_count):
        transactions.extend(_month_transactions(months.add_months(start, offset), offset, rng))

    transactions.sort(key=lambda txn: (txn.date, txn.id))
    return transactions


def to_csv_frame(transactions: list[Transaction]) -> pd.DataFrame:
    """Lay transactions out the way a ledger export would."""

    return pd.DataFrame(
        [
            {
                "Date": txn.date.isoformat(),
                "Payee": txn.payee or "",
                "Category": txn.category,
                "Amount": f"{txn.raw_amount:.2f}",
                "Account": txn.account or "",
                "Memo/Notes": txn.memo or "",
            }
            for txn in transactions
        ],
        columns=CSV_COLUMNS,
    )


def write_synthetic_csv(
    path: str | Path = Path("data") / "synthetic_ledger.csv",
    *,
    months_count: int = DEFAULT_MONTHS,
    seed: int | None = DEFAULT_SEED,
) -> Path:
    """Persist a synthetic ledger export to disk."""

    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    to_csv_frame(generate_transactions(months_count, seed=seed)).to_csv(output, index=False)
    return output


def main() -> None:  # pragma: no cover - convenience CLI
    print(f"Wrote {write_synthetic_csv()}")


if __name__ == "__main__":  # pragma: no cover - module CLI
    main()
