import csv
import io
import logging
from datetime import date
from typing import Iterable, List, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from app.core.config import settings
from app.utils.analytics_summary import AnalyticsKPIs, AnalyticsSummary
from app.utils.analyzer import BreakdownEntry

logger = logging.getLogger(__name__)

# Initialize S3 client using default AWS credential chain
# (environment variables, AWS credentials file, or IAM role)
s3 = boto3.client("s3", region_name=settings.S3_REGION)

CSV_FIELDS = ["name", "value", "percent"]


def format_percent(fraction: float) -> str:
    return f"{fraction * 100:.2f}%"


def build_breakdown_csv(entries: Iterable[BreakdownEntry]) -> bytes:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for entry in entries:
        writer.writerow({
            "name": entry.name,
            "value": entry.value,
            "percent": format_percent(entry.percent),
        })
    return output.getvalue().encode("utf-8")


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def _line(pdf: FPDF, text: str) -> None:
    pdf.cell(0, 10, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def _breakdown_section(pdf: FPDF, title: str, entries: Iterable[BreakdownEntry]) -> None:
    pdf.ln(5)
    pdf.set_font("Helvetica", "B", 12)
    _line(pdf, title)
    pdf.set_font("Helvetica", "", 12)
    rows = list(entries)
    if not rows:
        _line(pdf, "None")
    for entry in rows:
        _line(pdf, f"- {entry.name}: {entry.value} ({format_percent(entry.percent)})")


def kpi_lines(kpis: AnalyticsKPIs) -> List[str]:
    # Average value mixes currencies
    return [
        f"Active users: {kpis.active_users}",
        f"Active subscriptions: {kpis.active_subscriptions}",
        f"Average monthly value: {kpis.average_monthly_value:,.0f} (mixed currencies)",
        f"Churn rate (lifetime): {kpis.churn_rate:.1f}%",
    ]


def build_analytics_pdf(
    summary: AnalyticsSummary,
    generated_on: Optional[date] = None,
) -> bytes:
    generated_on = generated_on or date.today()
    kpis = summary.kpis

    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    _line(pdf, f"{settings.PROJECT_NAME} - Analytics Report")

    pdf.set_font("Helvetica", "", 12)
    _line(pdf, f"Generated on: {generated_on.isoformat()}")
    pdf.ln(5)
    for text in kpi_lines(kpis):
        _line(pdf, text)

    _breakdown_section(pdf, "Subscriptions by platform:", summary.platform_breakdown)
    _breakdown_section(pdf, "Subscriptions by category:", summary.category_breakdown)

    return bytes(pdf.output())


def upload_report(content: bytes, report_id: str, extension: str, content_type: str) -> Optional[str]:
    s3_key = f"reports/admin/{report_id}.{extension}"
    try:
        s3.upload_fileobj(
            io.BytesIO(content),
            settings.S3_BUCKET_NAME,
            s3_key,
            ExtraArgs={"ContentType": content_type},
        )
        return f"https://{settings.S3_BUCKET_NAME}.s3.{settings.S3_REGION}.amazonaws.com/{s3_key}"
    except (BotoCoreError, ClientError, S3UploadFailedError) as e:
        logger.error(f"Failed to upload {s3_key}: {e}")
        return None


def generate_and_upload_analytics_report(summary: AnalyticsSummary, report_id: str) -> dict:
    """Build the PDF summary and both breakdown CSVs, upload them and return their URLs."""
    return {
        "pdf_report_url": upload_report(
            build_analytics_pdf(summary), report_id, "pdf", "application/pdf"
        ),
        "platforms_csv_url": upload_report(
            build_breakdown_csv(summary.platform_breakdown), f"{report_id}_platforms", "csv", "text/csv"
        ),
        "categories_csv_url": upload_report(
            build_breakdown_csv(summary.category_breakdown), f"{report_id}_categories", "csv", "text/csv"
        ),
    }
