"""
Handler utility functions for the RI autopilot Lambda.

Provides logging setup, schema-driven configuration loading, AWS client
initialization and error notification shared by every entry point.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from botocore.exceptions import ClientError


if TYPE_CHECKING:
    from mypy_boto3_sns.client import SNSClient

from ri_autopilot.shared import notifications
from ri_autopilot.shared.aws_utils import get_clients


# Configure logging
logger = logging.getLogger()


def configure_logging() -> None:
    """Configure logging level from LOG_LEVEL environment variable."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if not root.handlers:
        # Lambda installs its own handler; add one for local runs
        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(levelname)s - %(name)s - %(message)s"))
        root.addHandler(handler)
    else:
        for h in root.handlers:
            h.setLevel(level)


configure_logging()


def _split_list(raw_value: str) -> list[str]:
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def load_config_from_env(
    schema: dict[str, dict[str, Any]],
    validator: Callable[[dict[str, Any]], None] | None = None,
) -> dict[str, Any]:
    """
    Load configuration from environment variables based on a schema.

    Args:
        schema: Mapping of config field name to a spec dict with keys
                'required' (bool), 'type' ('str', 'bool', 'int', 'float',
                'json' or 'list'), 'default' (raw string) and 'env_var'
                (defaults to the uppercase field name)
        validator: Optional callable run on the loaded config; raises ValueError

    Returns:
        dict: Configuration dictionary with type-converted values

    Raises:
        KeyError: If a required environment variable is missing
        ValueError: If type conversion or validation fails

    Type Conversion Rules:
        - 'bool': case-insensitive 'true' -> True, anything else False
        - 'list': comma-separated string -> list of stripped, non-empty items
    """
    config = {}

    for field_name, field_spec in schema.items():
        env_var = field_spec.get("env_var", field_name.upper())
        field_type = field_spec.get("type", "str")
        default_value = field_spec.get("default")

        if field_spec.get("required", False):
            raw_value = os.environ[env_var]
        elif default_value is not None:
            raw_value = os.environ.get(env_var, default_value)
        else:
            raw_value = os.environ.get(env_var)

        if raw_value is None:
            continue

        try:
            if field_type == "str":
                config[field_name] = raw_value
            elif field_type == "bool":
                config[field_name] = raw_value.lower() == "true"
            elif field_type == "int":
                config[field_name] = int(raw_value)
            elif field_type == "float":
                config[field_name] = float(raw_value)
            elif field_type == "json":
                config[field_name] = json.loads(raw_value)
            elif field_type == "list":
                config[field_name] = _split_list(raw_value)
            else:
                logger.warning(
                    f"Unknown type '{field_type}' for field '{field_name}', treating as string"
                )
                config[field_name] = raw_value
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Failed to parse JSON for field '{field_name}' (env var '{env_var}'): {e.msg}"
            ) from e
        except (ValueError, TypeError) as e:
            raise ValueError(
                f"Failed to convert field '{field_name}' (env var '{env_var}') "
                f"to type '{field_type}': {e}"
            ) from e

    if validator is not None:
        validator(config)

    return config


def initialize_clients(
    config: dict[str, Any],
    session_name: str,
    error_callback: Callable[[str], None] | None = None,
) -> dict[str, Any]:
    """
    Initialize AWS clients with assume role support.

    Failures are logged with traceback, reported through ``error_callback``
    when given, and re-raised.

    Returns:
        dict: boto3 clients keyed 'ce', 'sns' and 's3'
    """
    try:
        clients = get_clients(config, session_name=session_name)
        logger.info(f"AWS clients initialized successfully (session: {session_name})")
        return clients
    except ClientError as e:
        error_msg = f"Failed to initialize AWS clients: {e!s}"
        if config.get("management_account_role_arn"):
            error_msg = f"Failed to assume role {config['management_account_role_arn']}: {e!s}"

        logger.error(error_msg, exc_info=True)

        if error_callback:
            try:
                error_callback(error_msg)
            except Exception as callback_error:
                logger.warning(f"Error callback failed: {callback_error}")

        raise


def lambda_handler_wrapper(lambda_name: str) -> Callable:
    """
    Decorator adding start/completion logging and traceback logging on failure.

    Exceptions are re-raised so the Lambda invocation fails visibly. Error
    notifications belong in the handler itself, which has the SNS client.
    """

    def decorator(handler_func: Callable) -> Callable:
        def wrapper(event: dict[str, Any], context: Any) -> dict[str, Any]:
            try:
                logger.info(f"Starting {lambda_name} Lambda execution")
                result = handler_func(event, context)
                logger.info(f"{lambda_name} Lambda completed successfully")
                return result
            except Exception as e:
                logger.error(f"{lambda_name} Lambda failed: {e!s}", exc_info=True)
                raise

        return wrapper

    return decorator


def send_error_notification(
    sns_client: SNSClient,
    sns_topic_arn: str,
    error_message: str,
    lambda_name: str = "Lambda",
    slack_webhook_url: str | None = None,
    teams_webhook_url: str | None = None,
) -> None:
    """
    Send error notification via SNS, Slack, and Teams.

    Notification failures are logged as warnings and never raised, since
    this runs while already handling an error.
    """
    logger.error(f"Sending error notification for {lambda_name}")

    timestamp = datetime.now(timezone.utc).isoformat()
    subject = f"[RI Autopilot] {lambda_name} Lambda Failed"
    body_lines = [
        f"RI Autopilot - {lambda_name} Lambda Error",
        "",
        f"ERROR: {error_message}",
        "",
        f"Time: {timestamp}",
        "",
        "Please check CloudWatch Logs for full details.",
    ]

    if sns_topic_arn:
        try:
            sns_client.publish(
                TopicArn=sns_topic_arn, Subject=subject, Message="\n".join(body_lines)
            )
            logger.info(f"Error notification sent via SNS to {sns_topic_arn}")
        except Exception as e:
            logger.warning(f"Failed to send SNS error notification: {e!s}")
    else:
        logger.error("Cannot send SNS error notification - SNS_TOPIC_ARN not provided")

    if slack_webhook_url:
        try:
            slack_message = notifications.format_slack_message(
                subject, body_lines, severity="error"
            )
            if not notifications.send_slack_notification(slack_webhook_url, slack_message):
                logger.warning("Slack error notification failed")
        except Exception as e:
            logger.warning(f"Failed to send Slack error notification: {e!s}")

    if teams_webhook_url:
        try:
            teams_message = notifications.format_teams_message(subject, body_lines)
            if not notifications.send_teams_notification(teams_webhook_url, teams_message):
                logger.warning("Teams error notification failed")
        except Exception as e:
            logger.warning(f"Failed to send Teams error notification: {e!s}")
