from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.utils.dates import as_utc, day_key, month_key, parse_bound, shift_months, start_of_day, utcnow

ANALYTICS_PERIODS = ("weekly", "monthly", "yearly", "custom")
REPORT_MONTHS = 6
TOP_CATEGORY_LIMIT = 5


@dataclass
class MonthlyTotals:
    """Income and expense totals for one calendar month of the report."""

    key: str
    month: str
    income: float = 0.0
    expense: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["income"] = round(self.income, 2)
        data["expense"] = round(self.expense, 2)
        data["net"] = round(self.income - self.expense, 2)
        return data


def _amount(record: Dict[str, Any], field: str = "amount") -> float:
    return float(record.get(field) or 0)


def _percentage(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


class FinanceAnalyzer:
    """
    Derived values over plain transaction, budget and goal records.

    Nothing here touches the store: routers fetch the owner's records and
    hand them over, which keeps every calculation testable on literal data.
    """

    # Dashboard

    def totals_by_type(self, transactions: Iterable[Dict[str, Any]]) -> Tuple[float, float]:
        income = expense = 0.0
        for tx in transactions:
            if tx.get("type") == "income":
                income += _amount(tx)
            elif tx.get("type") == "expense":
                expense += _amount(tx)
        return round(income, 2), round(expense, 2)

    def dashboard_stats(self, transactions: Iterable[Dict[str, Any]]) -> Dict[str, float]:
        total_income, total_expense = self.totals_by_type(transactions)
        return {
            "total_income": total_income,
            "total_expense": total_expense,
            "balance": total_income - total_expense,
        }

    # Budgets

    @staticmethod
    def budget_window_start(period: str, now: Optional[datetime] = None) -> datetime:
        """First instant of the current month (monthly) or year (yearly), UTC."""
        today = start_of_day(now or utcnow())
        if period == "yearly":
            return today.replace(month=1, day=1)
        return today.replace(day=1)

    def budget_spending(
        self,
        budget: Dict[str, Any],
        transactions: Iterable[Dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> Dict[str, float]:
        window_start = self.budget_window_start(budget.get("period", "monthly"), now)
        spent = round(
            sum(
                _amount(tx)
                for tx in transactions
                if tx.get("type") == "expense"
                and tx.get("category") == budget["category"]
                and as_utc(tx["date"]) >= window_start
            ),
            2,
        )
        limit = _amount(budget)
        return {
            "spent": spent,
            "remaining": round(limit - spent, 2),
            "percentage": _percentage(spent, limit),
        }

    # Goals

    def goal_progress(self, goal: Dict[str, Any]) -> Dict[str, float]:
        target = _amount(goal, "target_amount")
        current = _amount(goal, "current_amount")
        return {
            "progress": _percentage(current, target),
            "remaining": round(target - current, 2),
        }

    def goal_reached(self, goal: Dict[str, Any]) -> bool:
        return _amount(goal, "current_amount") >= _amount(goal, "target_amount")

    # Analytics

    @staticmethod
    def analytics_window(
        period: Optional[str],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Resolve an analytics period token (or explicit bounds) to a
        ``(start, end)`` pair. Either side may be None for an open range.
        Raises ValueError for an unknown token or an unparseable date.
        """
        now = as_utc(now) if now else utcnow()
        if period and period not in ANALYTICS_PERIODS:
            raise ValueError(f"Unknown period '{period}'")
        if period == "weekly":
            return now - timedelta(days=7), None
        if period == "monthly":
            return start_of_day(shift_months(now, -1)), None
        if period == "yearly":
            return start_of_day(shift_months(now, -12)), None
        return parse_bound(start_date), parse_bound(end_date, end=True)

    def category_breakdown(self, transactions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        totals: Dict[str, float] = defaultdict(float)
        for tx in transactions:
            if tx.get("type") == "expense":
                totals[tx["category"]] += _amount(tx)
        return [{"name": name, "value": round(value, 2)} for name, value in totals.items()]

    def income_expense_series(self, transactions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Per-day income and expense totals in chronological order."""
        days: Dict[str, Dict[str, Any]] = {}
        for tx in sorted(transactions, key=lambda item: as_utc(item["date"])):
            key = day_key(as_utc(tx["date"]))
            entry = days.setdefault(key, {"date": key, "income": 0.0, "expense": 0.0})
            if tx.get("type") == "income":
                entry["income"] += _amount(tx)
            else:
                entry["expense"] += _amount(tx)
        for entry in days.values():
            entry["income"] = round(entry["income"], 2)
            entry["expense"] = round(entry["expense"], 2)
        return list(days.values())

    def analytics(self, transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "category_breakdown": self.category_breakdown(transactions),
            "income_expense_data": self.income_expense_series(transactions),
        }

    # Reports

    def monthly_comparison(
        self,
        transactions: Iterable[Dict[str, Any]],
        now: Optional[datetime] = None,
        months: int = REPORT_MONTHS,
    ) -> List[Dict[str, Any]]:
        """Income vs expense for the trailing ``months`` calendar months, oldest first."""
        first_of_month = start_of_day(now or utcnow()).replace(day=1)
        buckets: Dict[str, MonthlyTotals] = {}
        for offset in range(months - 1, -1, -1):
            month_start = shift_months(first_of_month, -offset)
            key = month_key(month_start)
            buckets[key] = MonthlyTotals(key=key, month=month_start.strftime("%b %Y"))

        for tx in transactions:
            bucket = buckets.get(month_key(as_utc(tx["date"])))
            if bucket is None:
                continue
            if tx.get("type") == "income":
                bucket.income += _amount(tx)
            else:
                bucket.expense += _amount(tx)
        return [bucket.to_dict() for bucket in buckets.values()]

    def category_trends(self, transactions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        trends: Dict[str, Dict[str, Any]] = {}
        for tx in transactions:
            entry = trends.setdefault(tx["category"], {"name": tx["category"], "value": 0.0, "count": 0})
            entry["value"] += _amount(tx)
            entry["count"] += 1
        for entry in trends.values():
            entry["value"] = round(entry["value"], 2)
        return sorted(trends.values(), key=lambda entry: entry["value"], reverse=True)

    def top_categories(
        self,
        transactions: Iterable[Dict[str, Any]],
        limit: int = TOP_CATEGORY_LIMIT,
    ) -> List[Dict[str, Any]]:
        breakdown = self.category_breakdown(transactions)
        total = sum(item["value"] for item in breakdown)
        ranked = sorted(breakdown, key=lambda item: item["value"], reverse=True)[:limit]
        return [
            {"category": item["name"], "amount": item["value"], "percentage": _percentage(item["value"], total)}
            for item in ranked
        ]

    def income_sources(self, transactions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        totals: Dict[str, float] = defaultdict(float)
        for tx in transactions:
            if tx.get("type") == "income":
                totals[tx["category"]] += _amount(tx)
        total = sum(totals.values())
        return [
            {"name": name, "value": round(value, 2), "percentage": _percentage(value, total)}
            for name, value in totals.items()
        ]

    def report(self, transactions: List[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
        total_income, total_expense = self.totals_by_type(transactions)
        return {
            "summary": {
                "total_income": total_income,
                "total_expense": total_expense,
                "net_savings": total_income - total_expense,
            },
            "monthly_comparison": self.monthly_comparison(transactions, now),
            "category_trends": self.category_trends(transactions),
            "top_categories": self.top_categories(transactions),
            "income_sources": self.income_sources(transactions),
        }
