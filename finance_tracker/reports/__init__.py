"""Dashboard reports package."""

from finance_tracker.reports.builder import (
    CategoryBreakdown,
    CategoryTotal,
    MonthlyTrend,
    SummaryReport,
    TransactionReports,
)

__all__ = [
    "CategoryBreakdown",
    "CategoryTotal",
    "MonthlyTrend",
    "SummaryReport",
    "TransactionReports",
]
