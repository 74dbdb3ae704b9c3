import logging
import uuid
from datetime import date
from typing import Dict, Literal

from fastapi import APIRouter, Depends, HTTPException, Response

from app.core.security import require_admin
from app.db.repository import SubscriptionRepository, get_repository
from app.models.user import UserInDB
from app.utils import analytics_summary, pdf_report

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/analytics/{dataset}.csv")
def download_breakdown_csv(
    dataset: Literal["platforms", "categories"],
    admin: UserInDB = Depends(require_admin),
    repo: SubscriptionRepository = Depends(get_repository),
) -> Response:
    summary = analytics_summary.summarize(repo.get_all_users(), repo.get_all_subscriptions())
    entries = summary.platform_breakdown if dataset == "platforms" else summary.category_breakdown
    filename = f"global_{dataset}_{date.today().isoformat()}.csv"
    return Response(
        content=pdf_report.build_breakdown_csv(entries),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/analytics")
def generate_analytics_report(
    admin: UserInDB = Depends(require_admin),
    repo: SubscriptionRepository = Depends(get_repository),
) -> Dict:
    """
    Build the global analytics report (PDF plus platform/category CSVs),
    upload it to S3 and return the KPIs together with the download links.
    """
    logger.info(f"Generating analytics report for admin {admin.email}")
    summary = analytics_summary.summarize(repo.get_all_users(), repo.get_all_subscriptions())
    report_id = f"analytics_{date.today().isoformat()}_{uuid.uuid4().hex[:6]}"

    try:
        urls = pdf_report.generate_and_upload_analytics_report(summary, report_id)
    except Exception as e:
        logger.error(f"Error building analytics report: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error building analytics report")

    return {
        "report_id": report_id,
        **summary.to_dict(),
        **urls,
    }
