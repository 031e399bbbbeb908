"""Reusable environment-variable schema fragments for load_config_from_env."""

PURCHASE_PARAMS = {
    "services": {
        "required": False,
        "type": "list",
        "default": "rds,elasticache,ec2,opensearch,redshift,memorydb",
        "env_var": "SERVICES",
    },
    "regions": {"required": False, "type": "list", "default": "", "env_var": "REGIONS"},
    "coverage_percent": {
        "required": False,
        "type": "float",
        "default": "80",
        "env_var": "COVERAGE_PERCENT",
    },
    "dry_run": {"required": False, "type": "bool", "default": "true", "env_var": "DRY_RUN"},
    "payment_option": {
        "required": False,
        "type": "str",
        "default": "no-upfront",
        "env_var": "PAYMENT_OPTION",
    },
    "term_years": {"required": False, "type": "int", "default": "3", "env_var": "TERM_YEARS"},
    "lookback_days": {
        "required": False,
        "type": "int",
        "default": "7",
        "env_var": "LOOKBACK_DAYS",
    },
    "account_id": {"required": False, "type": "str", "env_var": "ACCOUNT_ID"},
    "purchase_delay_seconds": {
        "required": False,
        "type": "float",
        "default": "2",
        "env_var": "PURCHASE_DELAY_SECONDS",
    },
    "duplicate_lookback_hours": {
        "required": False,
        "type": "int",
        "default": "24",
        "env_var": "DUPLICATE_LOOKBACK_HOURS",
    },
    "skip_duplicate_check": {
        "required": False,
        "type": "bool",
        "default": "false",
        "env_var": "SKIP_DUPLICATE_CHECK",
    },
    "max_instances": {"required": False, "type": "int", "default": "0", "env_var": "MAX_INSTANCES"},
    "override_count": {
        "required": False,
        "type": "int",
        "default": "0",
        "env_var": "OVERRIDE_COUNT",
    },
}

FILTER_PARAMS = {
    "include_regions": {"required": False, "type": "list", "env_var": "INCLUDE_REGIONS"},
    "exclude_regions": {"required": False, "type": "list", "env_var": "EXCLUDE_REGIONS"},
    "include_instance_types": {
        "required": False,
        "type": "list",
        "env_var": "INCLUDE_INSTANCE_TYPES",
    },
    "exclude_instance_types": {
        "required": False,
        "type": "list",
        "env_var": "EXCLUDE_INSTANCE_TYPES",
    },
    "include_engines": {"required": False, "type": "list", "env_var": "INCLUDE_ENGINES"},
    "exclude_engines": {"required": False, "type": "list", "env_var": "EXCLUDE_ENGINES"},
    "include_accounts": {"required": False, "type": "list", "env_var": "INCLUDE_ACCOUNTS"},
    "exclude_accounts": {"required": False, "type": "list", "env_var": "EXCLUDE_ACCOUNTS"},
}

RETRY_PARAMS = {
    "max_retries": {"required": False, "type": "int", "default": "5", "env_var": "MAX_RETRIES"},
    "retry_base_delay_seconds": {
        "required": False,
        "type": "float",
        "default": "1",
        "env_var": "RETRY_BASE_DELAY_SECONDS",
    },
    "retry_max_delay_seconds": {
        "required": False,
        "type": "float",
        "default": "30",
        "env_var": "RETRY_MAX_DELAY_SECONDS",
    },
}

NOTIFICATION_PARAMS = {
    "sns_topic_arn": {"required": False, "type": "str", "env_var": "SNS_TOPIC_ARN"},
    "slack_webhook_url": {"required": False, "type": "str", "env_var": "SLACK_WEBHOOK_URL"},
    "teams_webhook_url": {"required": False, "type": "str", "env_var": "TEAMS_WEBHOOK_URL"},
    "reports_bucket": {"required": False, "type": "str", "env_var": "REPORTS_BUCKET"},
}

AWS_COMMON = {
    "management_account_role_arn": {
        "required": False,
        "type": "str",
        "env_var": "MANAGEMENT_ACCOUNT_ROLE_ARN",
    },
}
