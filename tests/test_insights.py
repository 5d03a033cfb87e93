from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from cashflow_analyser import features, insights, kpis, rollups
from cashflow_analyser.transactions import Transaction


def _ledger(latest_software: float = 400.0) -> list[Transaction]:
    rows = []
    for month, software in ((1, 100.0), (2, 100.0), (3, 100.0), (4, latest_software)):
        rows += [
            Transaction.from_raw(date(2024, month, 1), 5000, "Sales", payee="Client Co"),
            Transaction.from_raw(date(2024, month, 2), -1000, "Rent", payee="Landlord"),
            Transaction.from_raw(date(2024, month, 3), -software, "Software", payee="SaaS Inc"),
            Transaction.from_raw(date(2024, month, 4), -(60.0 if month < 4 else 90.0), "Marketing"),
        ]
    return rows


def _frames(ledger: list[Transaction]) -> tuple[pd.DataFrame, list]:
    frame = features.add_engineered_features(ledger)
    return frame, rollups.compute_monthly_rollups(frame)


def test_expense_slices_rank_and_share() -> None:
    frame, _ = _frames(_ledger())
    slices = insights.build_expense_slices(frame.loc[frame["month"] == "2024-04"])

    assert [item["name"] for item in slices] == ["Rent", "Software", "Marketing"]
    assert sum(item["share"] for item in slices) == pytest.approx(1.0)
    assert slices[0]["value"] == pytest.approx(1000.0)
    assert slices[0]["color"] == insights.EXPENSE_COLORS[0]


def test_expense_slices_are_capped() -> None:
    ledger = [
        Transaction.from_raw(date(2024, 1, 1), -(10.0 + index), f"Category {index}")
        for index in range(10)
    ]
    slices = insights.build_expense_slices(features.add_engineered_features(ledger))

    assert len(slices) == insights.MAX_EXPENSE_SLICES
    assert slices[0]["name"] == "Category 9"
    assert sum(item["share"] for item in slices) == pytest.approx(1.0)


def test_top_payees_use_unknown_label() -> None:
    frame, _ = _frames(_ledger())
    payees = insights.build_top_payees(frame.loc[frame["month"] == "2024-04"])

    assert [item["payee"] for item in payees] == ["Landlord", "SaaS Inc", "Unknown"]
    assert payees[2]["transaction_count"] == 1


def test_movers_sorted_by_absolute_delta() -> None:
    frame, _ = _frames(_ledger())
    movers = insights.build_movers(frame.loc[frame["month"] == "2024-04"], frame.loc[frame["month"] == "2024-03"])

    assert [item["category"] for item in movers] == ["Software", "Marketing", "Rent"]
    assert movers[0]["delta"] == pytest.approx(300.0)
    assert movers[0]["delta_percent"] == pytest.approx(300.0)
    assert movers[2]["delta"] == 0.0


def test_movers_include_categories_missing_this_month() -> None:
    current = features.add_engineered_features([Transaction.from_raw(date(2024, 2, 1), -50, "Rent")])
    previous = features.add_engineered_features([Transaction.from_raw(date(2024, 1, 1), -80, "Travel")])

    movers = insights.build_movers(current, previous)

    assert {item["category"]: item["delta"] for item in movers} == {"Travel": -80.0, "Rent": 50.0}
    assert movers[0]["category"] == "Travel"


def test_opportunities_flag_overruns_against_baseline() -> None:
    frame, monthly = _frames(_ledger())

    assert insights.category_baseline(frame, monthly, "Software", "2024-04") == pytest.approx(100.0)
    opportunities = insights.build_opportunities(frame, monthly, "2024-04")

    assert opportunities == [
        {
            "title": "Control Software",
            "savings": 300.0,
            "hint": "Current month is $300.00 above recent baseline.",
        }
    ]


def test_opportunities_fallback_when_nothing_overruns() -> None:
    frame, monthly = _frames(_ledger(latest_software=100.0))

    (fallback,) = insights.build_opportunities(frame, monthly, "2024-04")

    assert fallback["title"] == "Tighten discretionary spend"
    # 3% of 1000 + 100 + 90
    assert fallback["savings"] == pytest.approx(35.7)
    assert insights.build_opportunities(frame, monthly, None) == []


def test_summary_bullets_and_sustainability() -> None:
    frame, monthly = _frames(_ledger())
    opportunities = insights.build_opportunities(frame, monthly, "2024-04")

    bullets = insights.build_summary_bullets(monthly[-1], monthly[-2], opportunities, len(frame))
    assert bullets[0] == "Processed 16 transactions through Apr 2024 with net positive cash flow."
    assert bullets[1] == "Revenue moved up $0 versus Mar 2024."
    assert bullets[2].endswith("could recover $300.")

    aggregations = kpis.compute_kpi_aggregations(monthly)
    cards = kpis.build_kpi_cards(aggregations["this_month"], aggregations["last_month"])
    indicators = {item["label"]: item["value"] for item in insights.build_sustainability(cards, monthly[-1], 4)}
    assert indicators == {
        "Revenue Momentum": "Getting Worse",
        "Cost Discipline": "Needs Attention",
        "Net Cash Position": "Healthy",
        "Consistency": "Need More History",
    }
