"""
CSV reports of purchase results and selected recommendations.

Reports are rendered to strings and optionally uploaded to S3.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from ri_autopilot.shared.models import PurchaseResult, Recommendation


if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client


logger = logging.getLogger()

RESULT_COLUMNS = [
    "Timestamp",
    "Status",
    "Service",
    "Region",
    "Engine",
    "Instance Type",
    "Payment Option",
    "Term (months)",
    "Instance Count",
    "Purchase ID",
    "Reservation ID",
    "Actual Cost",
    "Upfront Cost",
    "Recurring Monthly Cost",
    "Estimated Monthly Savings",
    "Savings Percent",
    "Coverage Percent",
    "Message",
    "Description",
]

RECOMMENDATION_COLUMNS = [
    "Timestamp",
    "Service",
    "Region",
    "Account",
    "Engine",
    "Instance Type",
    "Payment Option",
    "Term (months)",
    "Recommended Count",
    "Estimated Monthly Savings",
    "Savings Percent",
    "Annual Savings",
    "Total Term Savings",
    "Description",
]


def _result_row(result: PurchaseResult) -> list[Any]:
    rec = result.recommendation
    return [
        result.timestamp.isoformat(),
        "SUCCESS" if result.success else "FAILED",
        rec.service.value,
        rec.region,
        rec.engine_label() or "",
        rec.instance_type,
        rec.payment_option,
        rec.term_months,
        rec.count,
        result.purchase_id,
        result.reservation_id,
        f"{result.actual_cost:.2f}",
        f"{rec.upfront_cost:.2f}",
        f"{rec.recurring_monthly_cost:.2f}",
        f"{rec.estimated_cost:.2f}",
        f"{rec.savings_percent:.1f}",
        f"{rec.coverage_percent:.1f}",
        result.message,
        rec.description,
    ]


def _recommendation_row(rec: Recommendation) -> list[Any]:
    annual_savings = rec.estimated_cost * 12
    return [
        rec.timestamp.isoformat(),
        rec.service.value,
        rec.region,
        rec.account_name or rec.account_id,
        rec.engine_label() or "",
        rec.instance_type,
        rec.payment_option,
        rec.term_months,
        rec.count,
        f"{rec.estimated_cost:.2f}",
        f"{rec.savings_percent:.1f}",
        f"{annual_savings:.2f}",
        f"{rec.estimated_cost * rec.term_months:.2f}",
        rec.description,
    ]


def _render(columns: list[str], rows: list[list[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows(rows)
    return buffer.getvalue()


def generate_results_csv(results: list[PurchaseResult]) -> str:
    """Render purchase results as CSV, one row per result."""
    logger.info(f"Generating CSV report for {len(results)} purchase results")
    return _render(RESULT_COLUMNS, [_result_row(r) for r in results])


def generate_recommendations_csv(recommendations: list[Recommendation]) -> str:
    """Render recommendations as CSV, one row per recommendation."""
    return _render(RECOMMENDATION_COLUMNS, [_recommendation_row(r) for r in recommendations])


def upload_report_to_s3(
    s3_client: S3Client,
    bucket_name: str,
    report_content: str,
    report_name: str = "purchase-results",
    metadata: Optional[dict[str, str]] = None,
) -> str:
    """
    Upload a CSV report to S3.

    Returns:
        str: Object key of the uploaded report

    Raises:
        ClientError: If the upload fails
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
    object_key = f"ri-autopilot/{report_name}_{timestamp}.csv"

    try:
        s3_client.put_object(
            Bucket=bucket_name,
            Key=object_key,
            Body=report_content.encode("utf-8"),
            ContentType="text/csv",
            ServerSideEncryption="AES256",
            Metadata={
                "generated-at": datetime.now(timezone.utc).isoformat(),
                "generator": "ri-autopilot",
                **(metadata or {}),
            },
        )
    except Exception as e:
        logger.error(f"Failed to upload report to S3: {e}")
        raise

    logger.info(f"Uploaded report to S3: s3://{bucket_name}/{object_key}")
    return object_key
