"""
Health Check Router
Liveness plus reachability of the AWS resources the API depends on
"""
import logging
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter

from app.core.config import settings
from app.db import dynamo
from app.utils import pdf_report

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat(),
    }


def _table_status(name: str, table) -> dict:
    try:
        table.scan(Limit=1)
        return {"name": name, "status": "accessible", "region": settings.DYNAMO_REGION}
    except (BotoCoreError, ClientError) as e:
        logger.error(f"DynamoDB check failed for {name}: {str(e)}")
        return {"name": name, "status": "error", "error": str(e)}


@router.get("/status")
def aws_services_status():
    """
    Check connectivity of DynamoDB (users and subscriptions tables)
    and the S3 reports bucket.
    """
    tables = {
        "users": _table_status(settings.DYNAMO_USERS_TABLE, dynamo.users_table),
        "subscriptions": _table_status(settings.DYNAMO_SUBSCRIPTIONS_TABLE, dynamo.subscriptions_table),
    }
    dynamodb_status = {
        "connected": all(table["status"] == "accessible" for table in tables.values()),
        "tables": tables,
    }

    s3_status = {
        "connected": False,
        "bucket": settings.S3_BUCKET_NAME,
        "region": settings.S3_REGION,
        "error": None,
    }
    try:
        pdf_report.s3.head_bucket(Bucket=settings.S3_BUCKET_NAME)
        s3_status["connected"] = True
        s3_status["status"] = "accessible"
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        s3_status["error"] = f"{error_code}: {str(e)}"
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")
    except BotoCoreError as e:
        s3_status["error"] = str(e)
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")

    services = {"dynamodb": dynamodb_status, "s3": s3_status}
    return {
        "timestamp": datetime.utcnow().isoformat(),
        "services": services,
        "overall_status": "healthy" if all(s["connected"] for s in services.values()) else "degraded",
    }
