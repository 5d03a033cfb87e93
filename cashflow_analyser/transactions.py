"""Transaction value object and the CSV-row normalisation that produces it."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import IO, Iterable, Literal, Mapping, NamedTuple

import pandas as pd

from . import months

logger = logging.getLogger(__name__)

TransactionType = Literal["income", "expense"]

DEFAULT_CATEGORY = "Uncategorized"

DATE_KEYS = ("Date", "Transaction Date")
AMOUNT_KEYS = ("Amount",)
PAYEE_KEYS = ("Payee",)
CATEGORY_KEYS = ("Category",)
MEMO_KEYS = ("Memo/Notes", "Memo", "Notes")
ACCOUNT_KEYS = ("Account",)
TAG_KEYS = ("Tags",)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_AMOUNT_NOISE = re.compile(r"[$,()\s]")


@dataclass(frozen=True)
class Transaction:
    """One normalised ledger entry.

    ``type`` is ``income`` exactly when ``raw_amount >= 0`` and ``amount`` is
    always ``abs(raw_amount)``; the constructor rejects anything else.
    """

    date: date
    month: str
    type: TransactionType
    amount: float
    category: str
    raw_amount: float
    payee: str | None = None
    memo: str | None = None
    account: str | None = None
    tags: tuple[str, ...] = ()
    id: str = ""

    def __post_init__(self) -> None:
        expected_type = "income" if self.raw_amount >= 0 else "expense"
        if self.type != expected_type:
            raise ValueError(
                f"type {self.type!r} does not match raw_amount {self.raw_amount!r}"
            )
        if abs(self.amount - abs(self.raw_amount)) > 1e-9:
            raise ValueError("amount must equal abs(raw_amount)")

    @classmethod
    def from_raw(
        cls,
        day: date,
        raw_amount: float,
        category: str = DEFAULT_CATEGORY,
        *,
        payee: str | None = None,
        memo: str | None = None,
        account: str | None = None,
        tags: Iterable[str] = (),
        id: str = "",
    ) -> "Transaction":
        raw = float(raw_amount)
        return cls(
            date=day,
            month=months.month_of(day),
            type="income" if raw >= 0 else "expense",
            amount=abs(raw),
            category=category.strip() or DEFAULT_CATEGORY,
            raw_amount=raw,
            payee=payee or None,
            memo=memo or None,
            account=account or None,
            tags=tuple(tags),
            id=id,
        )


class DataSplit(NamedTuple):
    actuals: list[Transaction]
    projections: list[Transaction]
    today: date


def _normalise_key(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value).lower())


def _pick(lookup: Mapping[str, str], keys: Iterable[str]) -> str:
    for key in keys:
        found = lookup.get(_normalise_key(key))
        if found and found.strip():
            return found.strip()
    return ""


def parse_amount(raw: str) -> float | None:
    """Parse ``$1,234.50`` style amounts; ``(12.00)`` is negative."""

    text = str(raw or "").strip()
    if not text:
        return None
    negative = text.startswith("(") and text.endswith(")")
    numeric = _AMOUNT_NOISE.sub("", text)
    if not numeric:
        return None
    try:
        amount = float(numeric)
    except ValueError:
        return None
    if not math.isfinite(amount):
        return None
    return -abs(amount) if negative else amount


def _from_parts(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(raw: str | date) -> date | None:
    """Parse ISO or ``M/D/Y`` dates; ranges like ``1/1 - 1/31`` are rejected."""

    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw or "").strip()
    if not text or " - " in text:
        return None

    iso = _ISO_DATE.match(text)
    if iso:
        return _from_parts(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

    slash = _SLASH_DATE.match(text)
    if slash:
        year = int(slash.group(3))
        if year < 100:
            year += 1900 if year >= 70 else 2000
        return _from_parts(year, int(slash.group(1)), int(slash.group(2)))

    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _parse_tags(raw: str) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in re.split(r"[;,]", raw) if part.strip())


def _to_transaction(record: Mapping[str, object]) -> Transaction | None:
    lookup = {_normalise_key(key): "" if value is None else str(value) for key, value in record.items()}

    day = parse_date(_pick(lookup, DATE_KEYS))
    raw_amount = parse_amount(_pick(lookup, AMOUNT_KEYS))
    if day is None or raw_amount is None:
        return None

    account = _pick(lookup, ACCOUNT_KEYS)
    payee = _pick(lookup, PAYEE_KEYS)
    category = _pick(lookup, CATEGORY_KEYS) or DEFAULT_CATEGORY
    memo = _pick(lookup, MEMO_KEYS)
    tags = _parse_tags(_pick(lookup, TAG_KEYS))

    return Transaction.from_raw(
        day,
        raw_amount,
        category,
        payee=payee,
        memo=memo,
        account=account,
        tags=tags,
        id=f"{day.isoformat()}|{account}|{payee}|{category}|{raw_amount}|{memo}",
    )


def normalize_records(records: Iterable[Mapping[str, object]]) -> list[Transaction]:
    """Convert raw CSV rows into sorted transactions, dropping unusable rows."""

    transactions: list[Transaction] = []
    dropped = 0
    for record in records:
        txn = _to_transaction(record)
        if txn is None:
            dropped += 1
            continue
        transactions.append(txn)

    if dropped:
        logger.warning("Ignored %d row(s) without a valid date or amount", dropped)

    transactions.sort(key=lambda txn: (txn.date, txn.id))
    return transactions


def load_transactions_csv(path: str | Path | IO) -> list[Transaction]:
    """Read a ledger export (a path or an open buffer) and normalise it."""

    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    logger.debug("Read %d row(s) from %s", len(frame), path)
    return normalize_records(frame.to_dict("records"))


def split_actuals_and_projections(
    transactions: Iterable[Transaction],
    today: date | None = None,
) -> DataSplit:
    """Separate booked transactions from future-dated (scheduled) ones."""

    reference = today or date.today()
    actuals: list[Transaction] = []
    projections: list[Transaction] = []
    for txn in transactions:
        (projections if txn.date > reference else actuals).append(txn)
    return DataSplit(actuals=actuals, projections=projections, today=reference)


def filter_transactions(transactions: Iterable[Transaction], query: str) -> list[Transaction]:
    """Case-insensitive search across payee, category, memo and account."""

    needle = (query or "").strip().lower()
    if not needle:
        return list(transactions)

    matches = []
    for txn in transactions:
        haystack = " ".join(
            part for part in (txn.payee, txn.category, txn.memo, txn.account) if part
        ).lower()
        if needle in haystack:
            matches.append(txn)
    return matches
