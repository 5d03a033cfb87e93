from __future__ import annotations

import logging

import pytest

from cashflow_analyser import config

ENV_KEYS = (
    "CASHFLOW_CSV_PATH",
    "CASHFLOW_MODE",
    "CASHFLOW_KPI_TIMEFRAME",
    "CASHFLOW_FORECAST_MONTHS",
    "OPENAI_API_KEY",
    "LLM_MODEL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    settings = config.load_config()

    assert settings.csv_path is None
    assert settings.cash_flow_mode == "operating"
    assert settings.kpi_timeframe == "ttm"
    assert settings.forecast_horizon_months == 36
    assert settings.openai_api_key is None
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("CASHFLOW_CSV_PATH", str(tmp_path / "ledger.csv"))
    monkeypatch.setenv("CASHFLOW_MODE", "total")
    monkeypatch.setenv("CASHFLOW_KPI_TIMEFRAME", "ytd")
    monkeypatch.setenv("CASHFLOW_FORECAST_MONTHS", "99")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = config.load_config()

    assert settings.csv_path == tmp_path / "ledger.csv"
    assert settings.cash_flow_mode == "total"
    assert settings.kpi_timeframe == "ytd"
    assert settings.forecast_horizon_months == 36
    assert settings.openai_api_key == "sk-test"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("CASHFLOW_MODE", "cash"),
        ("CASHFLOW_KPI_TIMEFRAME", "last_month"),
        ("CASHFLOW_FORECAST_MONTHS", "twelve"),
    ],
)
def test_invalid_values_raise(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(ValueError):
        config.load_config()


def test_setup_logging_installs_single_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        config.setup_logging("WARNING")
        config.setup_logging("WARNING")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
