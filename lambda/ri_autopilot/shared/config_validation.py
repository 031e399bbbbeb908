"""
Configuration validation for Lambda environment variables.

Validators raise ValueError with a descriptive message and pass silently
otherwise.
"""

from typing import Any

from ri_autopilot.shared import constants
from ri_autopilot.shared.models import Service
from ri_autopilot.shared.normalization import canonical_payment_option


VALID_TERM_YEARS = [1, 3]


def _validate_percentage_range(
    value: Any, field_name: str, min_val: float = 0.0, max_val: float = 100.0
) -> None:
    """Validate that a value is a number within [min_val, max_val]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(
            f"Field '{field_name}' must be a number, got {type(value).__name__}: {value}"
        )

    if value < min_val or value > max_val:
        raise ValueError(
            f"Field '{field_name}' must be between {min_val} and {max_val}, got {value}"
        )


def _validate_non_negative_number(value: Any, field_name: str) -> None:
    """Validate that a value is a number >= 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(
            f"Field '{field_name}' must be a number, got {type(value).__name__}: {value}"
        )

    if value < 0:
        raise ValueError(f"Field '{field_name}' must be greater than or equal to 0, got {value}")


def _validate_choice(config: dict[str, Any], field_name: str, choices: list[Any]) -> None:
    if field_name not in config:
        return

    if config[field_name] not in choices:
        raise ValueError(
            f"Invalid {field_name}: '{config[field_name]}'. "
            f"Must be one of: {', '.join(str(c) for c in choices)}"
        )


def _validate_string_fields(config: dict[str, Any], field_names: list[str]) -> None:
    """Validate optional string fields are non-empty when present."""
    for field_name in field_names:
        if field_name in config:
            field_value = config[field_name]
            if not isinstance(field_value, str) or not field_value.strip():
                raise ValueError(
                    f"Field '{field_name}' must be a non-empty string, "
                    f"got {type(field_value).__name__}"
                )


def validate_purchaser_config(config: dict[str, Any]) -> None:
    """
    Validate purchaser configuration schema and data types.

    Validates:
    - coverage_percent is within 0-100
    - term_years is 1 or 3, lookback_days is 7, 30 or 60
    - payment_option is a recognised payment option
    - services are known service names
    - delays, retries and limits are non-negative
    - optional string fields are non-empty

    Raises:
        ValueError: If validation fails with descriptive error message
    """
    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a dictionary, got {type(config).__name__}")

    if "coverage_percent" in config:
        _validate_percentage_range(config["coverage_percent"], "coverage_percent")

    _validate_choice(config, "term_years", VALID_TERM_YEARS)
    _validate_choice(config, "lookback_days", constants.VALID_LOOKBACK_DAYS)

    if "payment_option" in config:
        canonical_payment_option(config["payment_option"])

    if "services" in config:
        if not config["services"]:
            raise ValueError("Field 'services' must list at least one service")
        for service in config["services"]:
            Service.parse(service)

    for field_name in [
        "purchase_delay_seconds",
        "duplicate_lookback_hours",
        "max_instances",
        "override_count",
        "max_retries",
        "retry_base_delay_seconds",
        "retry_max_delay_seconds",
    ]:
        if field_name in config:
            _validate_non_negative_number(config[field_name], field_name)

    if (
        "retry_base_delay_seconds" in config
        and "retry_max_delay_seconds" in config
        and config["retry_base_delay_seconds"] > config["retry_max_delay_seconds"]
    ):
        raise ValueError(
            f"Field 'retry_base_delay_seconds' ({config['retry_base_delay_seconds']}) "
            f"must not exceed 'retry_max_delay_seconds' ({config['retry_max_delay_seconds']})"
        )

    _validate_string_fields(
        config,
        [
            "account_id",
            "sns_topic_arn",
            "reports_bucket",
            "management_account_role_arn",
            "slack_webhook_url",
            "teams_webhook_url",
        ],
    )
