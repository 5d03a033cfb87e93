"""Utility script to print the dashboard model for the synthetic ledger."""

from __future__ import annotations

import argparse

from cashflow_analyser import config, dashboard, diagnostics, synth, transactions


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--csv", help="Ledger export to load instead of the synthetic ledger")
    parser.add_argument("--mode", default="operating", choices=["operating", "total"])
    parser.add_argument("--months", type=int, default=synth.DEFAULT_MONTHS)
    parser.add_argument("--seed", type=int, default=synth.DEFAULT_SEED)
    args = parser.parse_args()

    config.setup_logging("WARNING")
    if args.csv:
        ledger = transactions.load_transactions_csv(args.csv)
    else:
        ledger = synth.generate_transactions(args.months, seed=args.seed)

    model = dashboard.compute_dashboard_model(ledger, cash_flow_mode=args.mode)
    diagnostics.log_debug_report(diagnostics.build_debug_report(model, ledger))
    print(dashboard.to_json(model))


if __name__ == "__main__":
    main()
