"""Streamlit entry point for the Cash-Flow Analyser app."""

from __future__ import annotations

import io

import pandas as pd
import streamlit as st

from cashflow_analyser import (
    config,
    dashboard,
    diagnostics,
    forecast,
    kpis,
    months,
    scenario,
    summarize,
    synth,
    timeframes,
    transactions,
    utils,
    viz,
)

TIMEFRAME_LABELS = {
    "this_month": "This month",
    "last_3_months": "Last 3 months",
    "ytd": "Year to date",
    "ttm": "Trailing 12 months",
    "last_24_months": "Last 24 months",
    "last_36_months": "Last 36 months",
}
FORECAST_RANGES = {"3 months": 3, "6 months": 6, "12 months": 12, "24 months": 24, "36 months": 36}
LIGHT_ICONS = {"green": "🟢", "red": "🔴", "neutral": "⚪"}


@st.cache_resource(show_spinner=False)
def _load_settings() -> config.AppConfig:
    settings = config.load_config()
    config.setup_logging(settings.log_level)
    return settings


@st.cache_data(show_spinner=False)
def _load_synthetic(months_count: int, seed: int) -> list[transactions.Transaction]:
    return synth.generate_transactions(months_count, seed=seed)


@st.cache_data(show_spinner=False)
def _load_upload(payload: bytes) -> list[transactions.Transaction]:
    return transactions.load_transactions_csv(io.BytesIO(payload))


@st.cache_data(show_spinner=False)
def _load_path(path: str) -> list[transactions.Transaction]:
    return transactions.load_transactions_csv(path)


def _format_card(card: kpis.KpiCard) -> tuple[str, str | None]:
    if card["format"] == "percent":
        value = f"{card['value']:.1f}%"
    else:
        value = utils.format_currency(card["value"], decimals=0)
    delta = utils.format_percent(card["delta_percent"]) if card["delta_percent"] is not None else None
    return value, delta


def _render_kpi_cards(cards: list[kpis.KpiCard], header: kpis.KpiHeaderLabel) -> None:
    st.caption(header["text"])
    columns = st.columns(len(cards) or 1)
    for column, card in zip(columns, cards):
        value, delta = _format_card(card)
        # Lower expenses render green.
        column.metric(
            card["label"],
            value,
            delta,
            delta_color="inverse" if card["id"] == "expense" else "normal",
        )


def _render_trajectory(model: dashboard.DashboardModel) -> None:
    columns = st.columns(len(model["trajectory_signals"]))
    for column, signal in zip(columns, model["trajectory_signals"]):
        icon = LIGHT_ICONS[signal["light"]]
        if signal["has_sufficient_history"]:
            detail = (
                f"{utils.format_currency(signal['current_net_cash_flow'], decimals=0)} vs "
                f"{utils.format_currency(signal['previous_net_cash_flow'], decimals=0)}"
                f" ({utils.format_percent(signal['percent_change'])})"
            )
        else:
            detail = "Not enough history yet"
        column.markdown(f"**{icon} {signal['label']}**")
        column.caption(detail)


def main() -> None:
    """Render the Cash-Flow Analyser Streamlit application."""

    st.set_page_config(page_title="Cash-Flow Analyser", page_icon="📈", layout="wide")
    settings = _load_settings()

    sidebar = st.sidebar
    sidebar.header("Data source")
    source = sidebar.radio("Ledger", ["Synthetic ledger", "Upload CSV"], index=0 if settings.csv_path is None else 1)

    ledger: list[transactions.Transaction] = []
    if source == "Upload CSV":
        uploaded = sidebar.file_uploader("Ledger export (CSV)", type=["csv"])
        if uploaded is not None:
            ledger = _load_upload(uploaded.getvalue())
        elif settings.csv_path is not None:
            ledger = _load_path(str(settings.csv_path))
            sidebar.caption(f"Loaded {settings.csv_path}")
    else:
        seed = int(sidebar.number_input("Random seed", value=synth.DEFAULT_SEED, min_value=0, step=1))
        months_count = int(
            sidebar.slider("Months of history", min_value=1, max_value=48, value=synth.DEFAULT_MONTHS)
        )
        ledger = _load_synthetic(months_count, seed)

    split = transactions.split_actuals_and_projections(ledger)
    if split.projections:
        sidebar.caption(f"{len(split.projections)} scheduled transaction(s) after {split.today} excluded.")

    sidebar.header("Analysis")
    query = sidebar.text_input("Search payee, category, memo or account")
    mode = sidebar.radio(
        "Cash-flow mode",
        utils.CASH_FLOW_MODES,
        index=utils.CASH_FLOW_MODES.index(settings.cash_flow_mode),
        format_func=str.title,
        help="Operating mode leaves capital distributions out of expenses.",
    )
    kpi_timeframe = sidebar.selectbox(
        "KPI timeframe",
        timeframes.KPI_COMPARISON_TIMEFRAMES,
        index=timeframes.KPI_COMPARISON_TIMEFRAMES.index(settings.kpi_timeframe),
        format_func=TIMEFRAME_LABELS.get,
    )
    range_labels = list(FORECAST_RANGES)
    default_range = next(
        (label for label, value in FORECAST_RANGES.items() if value >= settings.forecast_horizon_months),
        range_labels[-1],
    )
    forecast_label = sidebar.selectbox("Forecast range", range_labels, index=range_labels.index(default_range))
    granularity = sidebar.radio("Forecast granularity", viz.GRANULARITIES, format_func=str.title, horizontal=True)
    show_balance = sidebar.checkbox("Show running balance", value=False)
    starting_balance = float(sidebar.number_input("Starting balance", value=0.0, step=1000.0))

    visible = transactions.filter_transactions(split.actuals, query)
    model = dashboard.compute_dashboard_model(
        visible,
        cash_flow_mode=mode,
        kpi_timeframe=kpi_timeframe,
    )
    report = diagnostics.build_debug_report(model, visible)
    diagnostics.log_debug_report(report)

    st.title("Where is the cash going?")
    if not model["monthly_rollups"]:
        st.info("No transactions match the current data source and search.")
        return

    first_month = model["monthly_rollups"][0]["month"]
    st.caption(
        f"{model['transaction_count']:,} transactions · "
        f"{months.month_range_label(first_month, model['latest_month'])} · {mode.title()} mode"
    )

    st.markdown(f"### {TIMEFRAME_LABELS[kpi_timeframe]}")
    _render_kpi_cards(model["selected_kpi_cards"], model["kpi_header_label_by_timeframe"][kpi_timeframe])
    _render_trajectory(model)

    overview_tab, forecast_tab, categories_tab, scenario_tab, ledger_tab = st.tabs(
        ["Overview", "Forecast", "Categories", "Scenario", "Transactions"]
    )

    with overview_tab:
        left, right = st.columns([1.35, 1], gap="large")
        with left:
            st.plotly_chart(
                viz.plot_monthly_net_flow(model["monthly_rollups"]),
                use_container_width=True,
                config={"displayModeBar": False},
            )
        with right:
            metric = st.radio("Trend metric", list(viz.TREND_METRICS), format_func=viz.TREND_METRICS.get, horizontal=True)
            smoothing = st.radio(
                "Smoothing",
                list(viz.SMOOTHING_LABELS),
                format_func=viz.SMOOTHING_LABELS.get,
                horizontal=True,
            )
            st.plotly_chart(
                viz.plot_cash_flow_trend(model["trend"], metric=metric, smoothing=smoothing),
                use_container_width=True,
                config={"displayModeBar": False},
            )

        st.markdown("### Month in review")
        with st.spinner("Writing summary…"):
            st.markdown(
                summarize.summarize_dashboard(
                    model,
                    api_key=settings.openai_api_key,
                    model_name=settings.llm_model,
                )
            )

        indicator_cols = st.columns(len(model["sustainability"]))
        for column, indicator in zip(indicator_cols, model["sustainability"]):
            column.metric(indicator["label"], indicator["value"])

    with forecast_tab:
        cash_flow_forecast = model["cash_flow_forecast"]
        points = forecast.select_forecast_range(cash_flow_forecast["points"], FORECAST_RANGES[forecast_label])
        st.plotly_chart(
            viz.plot_cash_flow_forecast(
                points,
                cumulative=show_balance,
                starting_balance=starting_balance,
                granularity=granularity,
            ),
            use_container_width=True,
            config={"displayModeBar": False},
        )
        st.caption(cash_flow_forecast["revenue_note"])
        st.caption(cash_flow_forecast["expense_note"])
        margins = cash_flow_forecast["margins"]
        margin_cols = st.columns(2)
        margin_cols[0].metric("Suggested revenue margin", f"{margins['revenue_margin_pct']}%")
        margin_cols[1].metric("Suggested expense margin", f"+{margins['expense_margin_pct']}%")
        st.caption(margins["note"])

        projected = pd.DataFrame([point for point in points if point["status"] == "projected"])
        if not projected.empty:
            st.dataframe(projected.drop(columns=["status"]), hide_index=True, use_container_width=True)

    with categories_tab:
        left, right = st.columns([1, 1], gap="large")
        with left:
            st.plotly_chart(
                viz.plot_expense_donut(model["expense_slices"]),
                use_container_width=True,
                config={"displayModeBar": False},
            )
        with right:
            st.plotly_chart(
                viz.plot_movers(model["movers"]),
                use_container_width=True,
                config={"displayModeBar": False},
            )

        st.markdown(
            f"### Dig here · {utils.format_currency(model['opportunity_total'], decimals=0)} of possible savings"
        )
        if model["opportunities"]:
            st.dataframe(pd.DataFrame(model["opportunities"]), hide_index=True, use_container_width=True)
        if model["top_payees"]:
            st.markdown("### Top payees")
            st.dataframe(pd.DataFrame(model["top_payees"]), hide_index=True, use_container_width=True)

    with scenario_tab:
        growth = st.slider("Revenue growth per month (%)", min_value=-10.0, max_value=20.0, value=4.0, step=0.5)
        reduction = st.slider("Expense reduction per month (%)", min_value=-10.0, max_value=20.0, value=3.0, step=0.5)
        horizon = st.slider("Months", min_value=1, max_value=36, value=12)
        points = scenario.project_scenario(
            model,
            scenario.ScenarioInput(revenue_growth_pct=growth, expense_reduction_pct=reduction, months=horizon),
        )
        st.plotly_chart(viz.plot_scenario(points), use_container_width=True, config={"displayModeBar": False})
        if points:
            st.metric("Cumulative net after scenario", utils.format_currency(points[-1]["cumulative_net"], decimals=0))

    with ledger_tab:
        frame = utils.ensure_dataframe(visible)
        st.caption(f"Showing up to 200 rows ({len(frame):,} total)")
        st.dataframe(frame.tail(200), use_container_width=True)
        st.download_button(
            "Download dashboard JSON",
            data=dashboard.to_json(model),
            file_name="cash_flow_dashboard.json",
            mime="application/json",
        )

    if report["verdict"] != "OK":
        with st.expander("Consistency warnings"):
            for reason in report["failure_reasons"]:
                st.write(f"- {reason}")


if __name__ == "__main__":
    main()
