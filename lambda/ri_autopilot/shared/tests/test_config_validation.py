"""
Tests for purchaser configuration validation and environment loading.
"""

import pytest

from ri_autopilot.purchaser.config import load_configuration
from ri_autopilot.shared.config_validation import validate_purchaser_config


def _valid_config(**overrides):
    config = {
        "services": ["rds", "elasticache"],
        "regions": [],
        "coverage_percent": 80.0,
        "dry_run": True,
        "payment_option": "no-upfront",
        "term_years": 3,
        "lookback_days": 7,
        "purchase_delay_seconds": 2.0,
        "duplicate_lookback_hours": 24,
        "max_instances": 0,
        "override_count": 0,
        "max_retries": 5,
        "retry_base_delay_seconds": 1.0,
        "retry_max_delay_seconds": 30.0,
    }
    config.update(overrides)
    return config


# ============================================================================
# validate_purchaser_config Tests
# ============================================================================


def test_valid_config_passes():
    """Test that a complete valid configuration raises nothing."""
    validate_purchaser_config(_valid_config())


@pytest.mark.parametrize("coverage", [-1, 100.5, 150])
def test_coverage_out_of_range(coverage):
    """Test that coverage outside 0-100 is rejected."""
    with pytest.raises(ValueError, match="coverage_percent"):
        validate_purchaser_config(_valid_config(coverage_percent=coverage))


def test_coverage_bool_rejected():
    """Test that a boolean is not accepted as a percentage."""
    with pytest.raises(ValueError, match="must be a number"):
        validate_purchaser_config(_valid_config(coverage_percent=True))


def test_invalid_term_years():
    """Test that only 1 or 3 year terms are accepted."""
    with pytest.raises(ValueError, match="Invalid term_years"):
        validate_purchaser_config(_valid_config(term_years=2))


def test_invalid_lookback_days():
    """Test that only Cost Explorer lookback windows are accepted."""
    with pytest.raises(ValueError, match="Invalid lookback_days"):
        validate_purchaser_config(_valid_config(lookback_days=14))


def test_payment_option_spellings_accepted():
    """Test that any spelling of a known payment option validates."""
    validate_purchaser_config(_valid_config(payment_option="Partial Upfront"))
    validate_purchaser_config(_valid_config(payment_option="ALL_UPFRONT"))


def test_invalid_payment_option():
    """Test that unknown payment options are rejected."""
    with pytest.raises(ValueError, match="Invalid payment option"):
        validate_purchaser_config(_valid_config(payment_option="light-utilization"))


def test_unknown_service_rejected():
    """Test that an unknown service name is rejected."""
    with pytest.raises(ValueError, match="Unknown service"):
        validate_purchaser_config(_valid_config(services=["rds", "dynamodb"]))


def test_empty_services_rejected():
    """Test that at least one service must be configured."""
    with pytest.raises(ValueError, match="at least one service"):
        validate_purchaser_config(_valid_config(services=[]))


@pytest.mark.parametrize(
    "field_name", ["purchase_delay_seconds", "max_instances", "override_count", "max_retries"]
)
def test_negative_numbers_rejected(field_name):
    """Test that delays, limits and retry counts cannot be negative."""
    with pytest.raises(ValueError, match=field_name):
        validate_purchaser_config(_valid_config(**{field_name: -1}))


def test_base_delay_above_max_delay_rejected():
    """Test that the retry base delay cannot exceed the max delay."""
    with pytest.raises(ValueError, match="must not exceed"):
        validate_purchaser_config(
            _valid_config(retry_base_delay_seconds=60.0, retry_max_delay_seconds=30.0)
        )


def test_blank_optional_string_rejected():
    """Test that optional string settings cannot be blank when present."""
    with pytest.raises(ValueError, match="sns_topic_arn"):
        validate_purchaser_config(_valid_config(sns_topic_arn="  "))


def test_non_dict_config_rejected():
    """Test that the configuration must be a dictionary."""
    with pytest.raises(ValueError, match="must be a dictionary"):
        validate_purchaser_config(["rds"])


# ============================================================================
# load_configuration Tests
# ============================================================================


def test_load_configuration_defaults(monkeypatch):
    """Test defaults when no environment variables are set."""
    for var in ["SERVICES", "REGIONS", "COVERAGE_PERCENT", "DRY_RUN", "PAYMENT_OPTION",
                "SNS_TOPIC_ARN", "ACCOUNT_ID", "INCLUDE_ENGINES"]:
        monkeypatch.delenv(var, raising=False)

    config = load_configuration()

    assert config["services"] == ["rds", "elasticache", "ec2", "opensearch", "redshift", "memorydb"]
    assert config["regions"] == []
    assert config["coverage_percent"] == 80.0
    assert config["dry_run"] is True
    assert config["payment_option"] == "no-upfront"
    assert config["term_years"] == 3
    assert config["max_retries"] == 5
    assert "sns_topic_arn" not in config
    assert "include_engines" not in config


def test_load_configuration_from_environment(monkeypatch):
    """Test list, bool and numeric conversion of environment values."""
    monkeypatch.setenv("SERVICES", "rds, savingsplans")
    monkeypatch.setenv("REGIONS", "us-east-1,eu-west-1,")
    monkeypatch.setenv("COVERAGE_PERCENT", "50")
    monkeypatch.setenv("DRY_RUN", "FALSE")
    monkeypatch.setenv("EXCLUDE_ENGINES", "oracle")
    monkeypatch.setenv("MAX_INSTANCES", "10")

    config = load_configuration()

    assert config["services"] == ["rds", "savingsplans"]
    assert config["regions"] == ["us-east-1", "eu-west-1"]
    assert config["coverage_percent"] == 50.0
    assert config["dry_run"] is False
    assert config["exclude_engines"] == ["oracle"]
    assert config["max_instances"] == 10


def test_load_configuration_bad_number(monkeypatch):
    """Test that an unparseable number names the offending variable."""
    monkeypatch.setenv("TERM_YEARS", "three")
    with pytest.raises(ValueError, match="TERM_YEARS"):
        load_configuration()


def test_load_configuration_runs_validation(monkeypatch):
    """Test that loaded values go through the validator."""
    monkeypatch.setenv("COVERAGE_PERCENT", "120")
    with pytest.raises(ValueError, match="coverage_percent"):
        load_configuration()
