"""
Slack and Microsoft Teams webhook notifications.

Severity levels for Slack messages:
    - 'success' (green): purchases completed
    - 'warning' (orange): some purchases failed or were cancelled
    - 'error' (red): the run itself failed
    - 'info' (blue): dry runs and other informational messages (default)
"""

import json
import logging
from typing import Any

import urllib3


logger = logging.getLogger()

# Shared pool, reused across notifications within one invocation
http = urllib3.PoolManager(
    num_pools=1,
    maxsize=2,
    timeout=urllib3.Timeout(connect=5.0, read=10.0),
)

SEVERITY_CONFIG = {
    "success": {"color": "#36a64f", "emoji": "✅"},
    "warning": {"color": "#ff9900", "emoji": "⚠️"},
    "error": {"color": "#ff0000", "emoji": "❌"},
    "info": {"color": "#0078D4", "emoji": "ℹ️"},
}


def format_slack_message(
    subject: str, body_lines: list[str], severity: str = "info"
) -> dict[str, Any]:
    """
    Format a Slack Block Kit message with a severity-colored attachment.

    Unknown severities fall back to 'info'.
    """
    config = SEVERITY_CONFIG.get(severity, SEVERITY_CONFIG["info"])

    blocks = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"{config['emoji']} {subject}",
                "emoji": True,
            },
        },
        {"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(body_lines)}},
    ]

    return {"attachments": [{"color": config["color"], "blocks": blocks}]}


def format_teams_message(subject: str, body_lines: list[str]) -> dict[str, Any]:
    """Format a Microsoft Teams MessageCard."""
    return {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "summary": subject,
        "themeColor": "0078D4",
        "title": subject,
        "text": "<br>".join(body_lines),
    }


def _post_webhook(channel: str, webhook_url: str, message_data: dict[str, Any]) -> bool:
    if not webhook_url:
        logger.warning(f"{channel} webhook URL not configured, skipping notification")
        return False

    try:
        response = http.request(
            "POST",
            webhook_url,
            body=json.dumps(message_data).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
    except urllib3.exceptions.TimeoutError as e:
        logger.error(f"{channel} webhook timeout error: {e!s}")
        return False
    except urllib3.exceptions.HTTPError as e:
        logger.error(f"{channel} webhook HTTP error: {e!s}")
        return False

    if response.status == 200:
        logger.info(f"{channel} notification sent successfully")
        return True
    logger.error(f"{channel} notification failed with status {response.status}")
    return False


def send_slack_notification(webhook_url: str, message_data: dict[str, Any]) -> bool:
    """Send a notification to Slack. Returns True on HTTP 200."""
    return _post_webhook("Slack", webhook_url, message_data)


def send_teams_notification(webhook_url: str, message_data: dict[str, Any]) -> bool:
    """Send a notification to Microsoft Teams. Returns True on HTTP 200."""
    return _post_webhook("Teams", webhook_url, message_data)
