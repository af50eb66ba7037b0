"""Report parsing, aggregation and generate-then-poll orchestration."""

from .cashflow import CashflowSummary, CashflowTotals, aggregate
from .csv_stream import parse_csv, sanitize
from .poller import ReportPoller, ReportPollPolicy, ReportPollResult, ReportStatus

__all__ = [
    "CashflowSummary",
    "CashflowTotals",
    "aggregate",
    "parse_csv",
    "sanitize",
    "ReportPoller",
    "ReportPollPolicy",
    "ReportPollResult",
    "ReportStatus",
]
