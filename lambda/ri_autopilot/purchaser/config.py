"""
Configuration schema for the Purchaser Lambda.

All settings come from environment variables; see the schema fragments in
ri_autopilot.shared.config_schemas for names and defaults.
"""

from typing import Any

from ri_autopilot.shared.config_schemas import (
    AWS_COMMON,
    FILTER_PARAMS,
    NOTIFICATION_PARAMS,
    PURCHASE_PARAMS,
    RETRY_PARAMS,
)
from ri_autopilot.shared.config_validation import validate_purchaser_config
from ri_autopilot.shared.handler_utils import load_config_from_env


CONFIG_SCHEMA = {
    **PURCHASE_PARAMS,
    **FILTER_PARAMS,
    **RETRY_PARAMS,
    **NOTIFICATION_PARAMS,
    **AWS_COMMON,
}


def load_configuration() -> dict[str, Any]:
    """
    Load and validate configuration from environment variables.

    Returns:
        dict: Validated configuration dictionary

    Raises:
        ValueError: If a value cannot be converted or fails validation
    """
    return load_config_from_env(CONFIG_SCHEMA, validator=validate_purchaser_config)
