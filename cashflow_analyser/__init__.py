"""Core modules for the Cash-Flow Analyser application."""

from . import (
	config,
	dashboard,
	diagnostics,
	features,
	forecast,
	insights,
	kpis,
	months,
	rollups,
	scenario,
	series,
	summarize,
	synth,
	timeframes,
	trajectory,
	transactions,
	utils,
	viz,
)

__all__ = [
	"config",
	"dashboard",
	"diagnostics",
	"features",
	"forecast",
	"insights",
	"kpis",
	"months",
	"rollups",
	"scenario",
	"series",
	"summarize",
	"synth",
	"timeframes",
	"trajectory",
	"transactions",
	"utils",
	"viz",
]
