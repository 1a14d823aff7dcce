from typing import List

from app.models.base import CamelModel


class ReportSummary(CamelModel):
    total_income: float
    total_expense: float
    net_savings: float


class MonthlyComparison(CamelModel):
    key: str
    month: str
    income: float
    expense: float
    net: float


class CategoryTrend(CamelModel):
    name: str
    value: float
    count: int


class TopCategory(CamelModel):
    category: str
    amount: float
    percentage: float


class IncomeSource(CamelModel):
    name: str
    value: float
    percentage: float


class ReportResponse(CamelModel):
    summary: ReportSummary
    monthly_comparison: List[MonthlyComparison]
    category_trends: List[CategoryTrend]
    top_categories: List[TopCategory]
    income_sources: List[IncomeSource]
