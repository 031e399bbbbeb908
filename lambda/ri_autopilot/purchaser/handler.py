"""
Purchaser Lambda - buys Reserved Instances and Savings Plans from recommendations.

This Lambda:
1. Loads configuration from environment variables
2. Fetches Cost Explorer purchase recommendations for each configured service
3. Reconciles them against commitments bought in the last day
4. Scales them to the coverage target and applies operator limits
5. Purchases them (or simulates purchases when DRY_RUN=true)
6. Uploads a CSV report and sends a summary notification

Returns statusCode 200 when every attempted purchase succeeded and 500 when
any failed.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Optional

import boto3

from ri_autopilot.purchaser.clients import PurchaseClientRegistry
from ri_autopilot.purchaser.config import load_configuration
from ri_autopilot.purchaser.csv_report import (
    generate_recommendations_csv,
    generate_results_csv,
    upload_report_to_s3,
)
from ri_autopilot.purchaser.processor import ProcessorConfig, RunSummary, ServiceProcessor
from ri_autopilot.recommender.source import CostExplorerRecommendationSource
from ri_autopilot.shared import notifications
from ri_autopilot.shared.handler_utils import (
    initialize_clients,
    lambda_handler_wrapper,
    send_error_notification,
)
from ri_autopilot.shared.retry import RateLimitedRetriever


logger = logging.getLogger()

# Stop waiting this long before the Lambda timeout so the summary still goes out
TIMEOUT_MARGIN_SECONDS = 30


def build_client_registry() -> PurchaseClientRegistry:
    """Registry of purchase transports. Empty means only dry runs can purchase."""
    return PurchaseClientRegistry()


def start_timeout_guard(context: Any, cancel_event: threading.Event) -> Optional[threading.Timer]:
    """Set ``cancel_event`` shortly before the Lambda invocation times out."""
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if get_remaining is None:
        return None

    seconds = get_remaining() / 1000.0 - TIMEOUT_MARGIN_SECONDS
    if seconds <= 0:
        cancel_event.set()
        return None

    timer = threading.Timer(seconds, cancel_event.set)
    timer.daemon = True
    timer.start()
    return timer


def run_purchases(
    config: dict[str, Any],
    clients: dict[str, Any],
    registry: Optional[PurchaseClientRegistry] = None,
    cancel_event: Optional[threading.Event] = None,
) -> RunSummary:
    """Run the full recommendation-to-purchase pipeline once."""
    retriever = RateLimitedRetriever(
        base_delay=config.get("retry_base_delay_seconds", 1.0),
        max_delay=config.get("retry_max_delay_seconds", 30.0),
        max_retries=config.get("max_retries", 5),
    )
    source = CostExplorerRecommendationSource(clients["ce"], retriever)
    processor = ServiceProcessor(
        source,
        registry or build_client_registry(),
        ProcessorConfig.from_config(config),
        cancel_event=cancel_event,
    )
    return processor.process_all_services()


def _summary_lines(summary: RunSummary, report_key: Optional[str]) -> list[str]:
    lines = [
        f"Execution Time: {datetime.now(timezone.utc).isoformat()}",
        f"Mode: {'DRY RUN' if summary.dry_run else 'LIVE'}",
        f"Recommendations selected: {len(summary.recommendations)}",
        f"Successful purchases: {summary.successful_purchases}",
        f"Failed purchases: {summary.failed_purchases}",
    ]
    if summary.cancelled:
        lines.append("Run was cancelled before completion")
    lines.append("")
    for stats in summary.service_stats.values():
        lines.append(
            f"{stats.service.display_name}: {stats.recommendations_selected} recommendations, "
            f"{stats.instances_processed} units, {stats.successful_purchases} ok, "
            f"{stats.failed_purchases} failed, "
            f"est. ${stats.total_estimated_savings:,.2f}/month savings"
        )
    failures = [r for r in summary.results if not r.success]
    if failures:
        lines.append("")
        lines.append("Failures:")
        lines.extend(f"  - {r.recommendation.description}: {r.message}" for r in failures)
    if report_key:
        lines.append("")
        lines.append(f"Report: {report_key}")
    return lines


def send_summary_notification(
    config: dict[str, Any],
    sns_client: Any,
    summary: RunSummary,
    report_key: Optional[str] = None,
) -> None:
    """Send the run summary via SNS and optional Slack/Teams webhooks."""
    mode = "Dry Run" if summary.dry_run else "Purchase"
    subject = (
        f"[RI Autopilot] {mode} Complete - {summary.successful_purchases} Succeeded, "
        f"{summary.failed_purchases} Failed"
    )
    body_lines = _summary_lines(summary, report_key)

    if config.get("sns_topic_arn"):
        sns_client.publish(
            TopicArn=config["sns_topic_arn"],
            Subject=subject[:100],
            Message="\n".join(body_lines),
        )
        logger.info("Summary notification sent via SNS")

    if summary.has_failures or summary.cancelled:
        severity = "warning"
    elif summary.dry_run:
        severity = "info"
    else:
        severity = "success"

    if config.get("slack_webhook_url"):
        notifications.send_slack_notification(
            config["slack_webhook_url"],
            notifications.format_slack_message(subject, body_lines, severity=severity),
        )
    if config.get("teams_webhook_url"):
        notifications.send_teams_notification(
            config["teams_webhook_url"], notifications.format_teams_message(subject, body_lines)
        )


@lambda_handler_wrapper("Purchaser")
def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Main handler for the Purchaser Lambda.

    Raises:
        Exception: Unexpected errors are reported and re-raised
    """
    config = load_configuration()

    def send_error(error_msg: str, sns_client: Any = None) -> None:
        send_error_notification(
            sns_client or boto3.client("sns"),
            config.get("sns_topic_arn", ""),
            error_msg,
            lambda_name="Purchaser",
            slack_webhook_url=config.get("slack_webhook_url"),
            teams_webhook_url=config.get("teams_webhook_url"),
        )

    clients = initialize_clients(config, "ri-autopilot-purchaser", error_callback=send_error)

    cancel_event = threading.Event()
    timer = start_timeout_guard(context, cancel_event)
    try:
        summary = run_purchases(config, clients, cancel_event=cancel_event)

        report_key = None
        if config.get("reports_bucket") and summary.results:
            metadata = {"mode": "dry-run" if summary.dry_run else "live"}
            upload_report_to_s3(
                clients["s3"],
                config["reports_bucket"],
                generate_recommendations_csv(summary.recommendations),
                report_name="recommendations",
                metadata=metadata,
            )
            report_key = upload_report_to_s3(
                clients["s3"],
                config["reports_bucket"],
                generate_results_csv(summary.results),
                metadata=metadata,
            )

        send_summary_notification(config, clients["sns"], summary, report_key)
    except Exception as e:
        send_error(str(e), clients["sns"])
        raise
    finally:
        if timer is not None:
            timer.cancel()

    status_code = 500 if summary.has_failures else 200
    return {"statusCode": status_code, "body": json.dumps(summary.to_dict())}
