"""
Health Check Router
Liveness for load balancers plus a DynamoDB connectivity report
"""
import logging

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends

from app.core.config import settings
from app.db.dynamo import DynamoStore
from app.routers.deps import get_store
from app.utils.dates import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "OK",
        "message": f"{settings.PROJECT_NAME} API is running",
        "timestamp": utcnow().isoformat(),
    }


@router.get("/status")
def store_status(store: DynamoStore = Depends(get_store)):
    """
    Check that every DynamoDB table is reachable.
    """
    tables = {}
    for label, table in (
        ("users", store.users_table),
        ("transactions", store.transactions_table),
        ("budgets", store.budgets_table),
        ("goals", store.goals_table),
    ):
        try:
            description = store.client.describe_table(TableName=table.name)["Table"]
            tables[label] = {"name": table.name, "status": description["TableStatus"]}
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error("DynamoDB check failed for %s: %s", table.name, error_code)
            tables[label] = {"name": table.name, "status": "error", "error": error_code}

    healthy = all(table["status"] == "ACTIVE" for table in tables.values())
    return {
        "timestamp": utcnow().isoformat(),
        "region": settings.DYNAMO_REGION,
        "tables": tables,
        "overall_status": "healthy" if healthy else "degraded",
    }
