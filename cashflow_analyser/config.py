"""Runtime configuration for the Cash-Flow Analyser.

Values come from the environment (a local ``.env`` is loaded first) so the
engine modules never read environment variables themselves.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import forecast, timeframes, utils

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass(frozen=True)
class AppConfig:
    """Strongly-typed container for runtime configuration.

    Attributes:
        csv_path: Ledger export to load. ``None`` means the synthetic ledger.
        cash_flow_mode: ``operating`` or ``total``.
        kpi_timeframe: Comparison timeframe selected on first load.
        forecast_horizon_months: Projected months shown by default (1-36).
        openai_api_key: Enables the LLM month-in-review when set.
        llm_model: Chat model used for the month-in-review.
        log_level: Root logging level name.
    """

    csv_path: Optional[Path]
    cash_flow_mode: str
    kpi_timeframe: str
    forecast_horizon_months: int
    openai_api_key: Optional[str]
    llm_model: str
    log_level: str


def load_config() -> AppConfig:
    """Create an :class:`AppConfig` from environment settings."""

    load_dotenv()

    csv_path = os.getenv("CASHFLOW_CSV_PATH")
    mode = utils.validate_cash_flow_mode(os.getenv("CASHFLOW_MODE", "operating"))

    kpi_timeframe = os.getenv("CASHFLOW_KPI_TIMEFRAME", "ttm")
    if kpi_timeframe not in timeframes.KPI_COMPARISON_TIMEFRAMES:
        raise ValueError(f"CASHFLOW_KPI_TIMEFRAME must be one of {timeframes.KPI_COMPARISON_TIMEFRAMES}")

    raw_horizon = os.getenv("CASHFLOW_FORECAST_MONTHS", str(forecast.FORECAST_HORIZON_MONTHS))
    try:
        horizon = int(raw_horizon)
    except ValueError as exc:
        raise ValueError(f"CASHFLOW_FORECAST_MONTHS must be an integer, got {raw_horizon!r}") from exc

    return AppConfig(
        csv_path=Path(csv_path) if csv_path else None,
        cash_flow_mode=mode,
        kpi_timeframe=kpi_timeframe,
        forecast_horizon_months=max(1, min(horizon, forecast.FORECAST_HORIZON_MONTHS)),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        llm_model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def setup_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger."""

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
