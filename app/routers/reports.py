import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.core.errors import ValidationError
from app.db.dynamo import DynamoStore
from app.models.report import ReportResponse
from app.routers.deps import finance_analyzer, get_current_user_id, get_store
from app.utils import report_export
from app.utils.dates import parse_bound, utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


def _load_report(store: DynamoStore, user_id: str, start_date: Optional[str], end_date: Optional[str]):
    try:
        start, end = parse_bound(start_date), parse_bound(end_date, end=True)
    except ValueError:
        raise ValidationError("startDate and endDate must be ISO dates")

    now = utcnow()
    transactions = store.list_transactions(user_id, start=start, end=end)
    logger.info("Building report for user %s over %d transactions", user_id, len(transactions))
    return finance_analyzer.report(transactions, now), now, start, end


@router.get("/summary", response_model=ReportResponse)
def get_report_summary(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    """
    Summary totals, the trailing six-month comparison, category trends, top
    five expense categories and income sources.
    """
    report, _, _, _ = _load_report(store, user_id, start_date, end_date)
    return report


@router.get("/export")
def export_report(
    export_format: Literal["csv", "pdf"] = Query("csv", alias="format"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    report, now, start, end = _load_report(store, user_id, start_date, end_date)
    filename = f"financial-report-{now.date().isoformat()}.{export_format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if export_format == "pdf":
        content = report_export.generate_pdf(report, now, start, end)
        return Response(content=content, media_type="application/pdf", headers=headers)

    content = report_export.generate_csv(report, now, start, end)
    return Response(content=content, media_type="text/csv", headers=headers)
