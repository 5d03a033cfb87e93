"""LLM month-in-review for a dashboard model.

Without an API key, or when the API call fails, the deterministic summary
bullets from the dashboard model are returned instead.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from openai import OpenAI, OpenAIError

from . import months
from .dashboard import DashboardModel

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


def _build_snapshot(model: DashboardModel) -> Dict[str, Any]:
    """Select the KPIs worth narrating."""

    latest = model["monthly_rollups"][-1] if model["monthly_rollups"] else None
    comparison = model["kpi_comparison_by_timeframe"].get("this_month")
    forecast = model["cash_flow_forecast"]
    projected = [point for point in forecast["points"] if point["status"] == "projected"][:3]

    return {
        "period_label": months.month_label(model["latest_month"]) if model["latest_month"] else None,
        "cash_flow_mode": model["cash_flow_mode"],
        "revenue": latest["revenue"] if latest else 0.0,
        "expenses": latest["expenses"] if latest else 0.0,
        "net_cash_flow": latest["net_cash_flow"] if latest else 0.0,
        "savings_rate": latest["savings_rate"] if latest else 0.0,
        "net_change_pct_vs_last_month": comparison["net_cash_flow"]["percent_change"] if comparison else None,
        "trajectory": {signal["id"]: signal["direction"] for signal in model["trajectory_signals"]},
        "top_categories": [(item["name"], item["value"]) for item in model["expense_slices"][:3]],
        "top_opportunity": model["opportunities"][0] if model["opportunities"] else None,
        "next_months": [(point["month"], point["net_cash_flow"]) for point in projected],
        "revenue_model": forecast["revenue_note"],
        "expense_model": forecast["expense_note"],
    }


def _build_prompt_from_snapshot(snapshot: Dict[str, Any]) -> str:
    return f"""
You are a finance assistant writing a month-in-review for a small business owner.
Use 5-7 concise sentences. Be specific with numbers (USD, no decimals).

DATA (JSON-like):
{snapshot}

Write:
1) Opening line with the month, revenue, expenses and net cash flow.
2) The month-over-month change in net cash flow, if present.
3) The largest expense categories.
4) What the forecast expects over the next three months.
5) Then 2-3 bullet actions starting with a verb, based on the opportunities.
"""


def fallback_summary(model: DashboardModel) -> str:
    if not model["summary_bullets"]:
        return "Highlights: no transactions to summarise yet."
    return "Highlights: " + " ".join(model["summary_bullets"])


def summarize_dashboard(
    model: DashboardModel,
    *,
    api_key: str | None = None,
    model_name: str = DEFAULT_MODEL,
) -> str:
    """Narrate the dashboard with an LLM, or fall back to the summary bullets."""

    if not api_key:
        logger.debug("No OpenAI API key configured; using fallback summary")
        return fallback_summary(model)
    if not model["monthly_rollups"]:
        return fallback_summary(model)

    prompt = _build_prompt_from_snapshot(_build_snapshot(model))
    try:
        client = OpenAI(api_key=api_key)
        response = client.chat.completions.create(
            model=model_name,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
            max_tokens=320,
        )
        text = (response.choices[0].message.content or "").strip()
    except OpenAIError as exc:
        logger.warning("LLM summary failed (%s: %s); using fallback", type(exc).__name__, exc)
        return fallback_summary(model)

    if not text:
        logger.warning("LLM returned an empty summary; using fallback")
        return fallback_summary(model)
    return text
