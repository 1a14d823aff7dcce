"""CSV and PDF renderings of the financial report rollups."""
import csv
import io
from datetime import datetime
from typing import Any, Dict, Optional

from fpdf import FPDF


def _money(amount: float) -> str:
    return f"{amount:,.2f}"


def _period_line(start: Optional[datetime], end: Optional[datetime]) -> Optional[str]:
    if not start and not end:
        return None
    start_text = start.date().isoformat() if start else "beginning"
    end_text = end.date().isoformat() if end else "today"
    return f"Period: {start_text} - {end_text}"


def generate_csv(
    report: Dict[str, Any],
    generated_at: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Financial Report"])
    writer.writerow([f"Generated: {generated_at.date().isoformat()}"])
    period = _period_line(start, end)
    if period:
        writer.writerow([period])
    writer.writerow([])

    summary = report["summary"]
    writer.writerow(["SUMMARY"])
    writer.writerow(["Metric", "Amount"])
    writer.writerow(["Total Income", _money(summary["total_income"])])
    writer.writerow(["Total Expense", _money(summary["total_expense"])])
    writer.writerow(["Net Savings", _money(summary["net_savings"])])
    writer.writerow([])

    writer.writerow(["MONTHLY INCOME VS EXPENSE"])
    writer.writerow(["Month", "Income", "Expense", "Net"])
    for month in report["monthly_comparison"]:
        writer.writerow([month["month"], _money(month["income"]), _money(month["expense"]), _money(month["net"])])
    writer.writerow([])

    if report["top_categories"]:
        writer.writerow(["TOP 5 SPENDING CATEGORIES"])
        writer.writerow(["#", "Category", "Amount", "% of Total"])
        for index, item in enumerate(report["top_categories"], start=1):
            writer.writerow([index, item["category"], _money(item["amount"]), f"{item['percentage']}%"])
        writer.writerow([])

    if report["income_sources"]:
        writer.writerow(["INCOME SOURCES"])
        writer.writerow(["#", "Source", "Amount", "% of Total"])
        for index, item in enumerate(report["income_sources"], start=1):
            writer.writerow([index, item["name"], _money(item["value"]), f"{item['percentage']}%"])

    return output.getvalue()


def generate_pdf(
    report: Dict[str, Any],
    generated_at: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> bytes:
    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, "Financial Report", new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", "", 12)
    pdf.cell(0, 8, f"Generated: {generated_at.date().isoformat()}", new_x="LMARGIN", new_y="NEXT")
    period = _period_line(start, end)
    if period:
        pdf.cell(0, 8, period, new_x="LMARGIN", new_y="NEXT")
    pdf.ln(5)

    summary = report["summary"]
    _heading(pdf, "Summary")
    _line(pdf, f"Total Income: {_money(summary['total_income'])}")
    _line(pdf, f"Total Expense: {_money(summary['total_expense'])}")
    _line(pdf, f"Net Savings: {_money(summary['net_savings'])}")

    pdf.ln(5)
    _heading(pdf, "Monthly Income vs Expense")
    for month in report["monthly_comparison"]:
        _line(
            pdf,
            f"- {month['month']}: income {_money(month['income'])}, "
            f"expense {_money(month['expense'])}, net {_money(month['net'])}",
        )

    pdf.ln(5)
    _heading(pdf, "Top Spending Categories")
    if report["top_categories"]:
        for index, item in enumerate(report["top_categories"], start=1):
            _line(pdf, f"{index}. {item['category']}: {_money(item['amount'])} ({item['percentage']}%)")
    else:
        _line(pdf, "None")

    pdf.ln(5)
    _heading(pdf, "Income Sources")
    if report["income_sources"]:
        for index, item in enumerate(report["income_sources"], start=1):
            _line(pdf, f"{index}. {item['name']}: {_money(item['value'])} ({item['percentage']}%)")
    else:
        _line(pdf, "None")

    return bytes(pdf.output())


def _heading(pdf: FPDF, text: str) -> None:
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 10, text, new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 12)


def _line(pdf: FPDF, text: str) -> None:
    pdf.cell(0, 8, text, new_x="LMARGIN", new_y="NEXT")
