"""
Dashboard Reports

DESIGN DECISION: Reports are computed from list_transactions() on every
request. They work the same whichever store is serving, and there is no
cached aggregate that could drift from the records.

Income and expenses are split on isIncome; amounts are always positive.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from finance_tracker.services.storage import StorageInterface


class ReportModel(BaseModel):
    """Report payloads use camelCase keys, like transactions."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SummaryReport(ReportModel):
    total_balance: float
    monthly_income: float
    monthly_expenses: float
    monthly_budget: float
    budget_used_percentage: int
    transaction_count: int


class CategoryTotal(ReportModel):
    category: str
    total: float
    percentage: int


class CategoryBreakdown(ReportModel):
    total_expenses: float
    categories: list[CategoryTotal]


class MonthlyTrend(ReportModel):
    month: str
    income: float
    expenses: float
    savings: float


def _month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def _previous_months(now: datetime, count: int) -> list[str]:
    """Month keys for the last `count` months, oldest first, ending at now."""
    year, month = now.year, now.month
    keys = []
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def _percentage(part: float, whole: float) -> int:
    return round(part / whole * 100) if whole > 0 else 0


class TransactionReports:
    """
    Builds the dashboard aggregates from stored transactions.

    `now` is injectable so month boundaries are deterministic in tests.
    """

    def __init__(
        self,
        storage: StorageInterface,
        monthly_budget: float = 2500.0,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._storage = storage
        self._monthly_budget = monthly_budget
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def summary(self) -> SummaryReport:
        """All-time balance plus income and expenses for the current month."""
        transactions = await self._storage.list_transactions()
        current_month = _month_key(self._now())

        income = sum(t.amount for t in transactions if t.is_income)
        expenses = sum(t.amount for t in transactions if not t.is_income)

        this_month = [t for t in transactions if _month_key(t.date) == current_month]
        monthly_income = sum(t.amount for t in this_month if t.is_income)
        monthly_expenses = sum(t.amount for t in this_month if not t.is_income)

        return SummaryReport(
            total_balance=round(income - expenses, 2),
            monthly_income=round(monthly_income, 2),
            monthly_expenses=round(monthly_expenses, 2),
            monthly_budget=self._monthly_budget,
            budget_used_percentage=_percentage(monthly_expenses, self._monthly_budget),
            transaction_count=len(transactions),
        )

    async def categories(self) -> CategoryBreakdown:
        """Expense totals per category, largest first."""
        transactions = await self._storage.list_transactions()

        totals: dict[str, float] = defaultdict(float)
        for transaction in transactions:
            if not transaction.is_income:
                totals[transaction.category.value] += transaction.amount

        total_expenses = sum(totals.values())
        categories = [
            CategoryTotal(
                category=category,
                total=round(total, 2),
                percentage=_percentage(total, total_expenses),
            )
            for category, total in totals.items()
        ]
        categories.sort(key=lambda c: c.total, reverse=True)

        return CategoryBreakdown(
            total_expenses=round(total_expenses, 2),
            categories=categories,
        )

    async def monthly(self, months: int = 12) -> list[MonthlyTrend]:
        """Income, expenses and savings for each of the last `months` months."""
        transactions = await self._storage.list_transactions()
        keys = _previous_months(self._now(), months)

        income: dict[str, float] = defaultdict(float)
        expenses: dict[str, float] = defaultdict(float)
        for transaction in transactions:
            key = _month_key(transaction.date)
            if transaction.is_income:
                income[key] += transaction.amount
            else:
                expenses[key] += transaction.amount

        return [
            MonthlyTrend(
                month=key,
                income=round(income[key], 2),
                expenses=round(expenses[key], 2),
                savings=round(income[key] - expenses[key], 2),
            )
            for key in keys
        ]
