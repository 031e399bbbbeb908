"""
Normalization of loosely-typed enumerations found in AWS responses.

Region labels, payment options and engine names arrive in several spellings
depending on which API produced them. These helpers map them onto the
canonical forms used throughout the pipeline.
"""

from __future__ import annotations

from ri_autopilot.shared import constants


# Human-readable region labels as returned by Cost Explorer
REGION_NAME_TO_CODE = {
    "US East (N. Virginia)": "us-east-1",
    "US East (Ohio)": "us-east-2",
    "US West (N. California)": "us-west-1",
    "US West (Oregon)": "us-west-2",
    "Africa (Cape Town)": "af-south-1",
    "Asia Pacific (Hong Kong)": "ap-east-1",
    "Asia Pacific (Hyderabad)": "ap-south-2",
    "Asia Pacific (Jakarta)": "ap-southeast-3",
    "Asia Pacific (Melbourne)": "ap-southeast-4",
    "Asia Pacific (Mumbai)": "ap-south-1",
    "Asia Pacific (Osaka)": "ap-northeast-3",
    "Asia Pacific (Seoul)": "ap-northeast-2",
    "Asia Pacific (Singapore)": "ap-southeast-1",
    "Asia Pacific (Sydney)": "ap-southeast-2",
    "Asia Pacific (Tokyo)": "ap-northeast-1",
    "Canada (Central)": "ca-central-1",
    "Canada (West)": "ca-west-1",
    "Europe (Frankfurt)": "eu-central-1",
    "Europe (Ireland)": "eu-west-1",
    "Europe (London)": "eu-west-2",
    "Europe (Milan)": "eu-south-1",
    "Europe (Paris)": "eu-west-3",
    "Europe (Spain)": "eu-south-2",
    "Europe (Stockholm)": "eu-north-1",
    "Europe (Zurich)": "eu-central-2",
    "Israel (Tel Aviv)": "il-central-1",
    "Middle East (Bahrain)": "me-south-1",
    "Middle East (UAE)": "me-central-1",
    "South America (São Paulo)": "sa-east-1",
    "AWS GovCloud (US-East)": "us-gov-east-1",
    "AWS GovCloud (US-West)": "us-gov-west-1",
}

_REGION_NAME_TO_CODE_LOWER = {name.lower(): code for name, code in REGION_NAME_TO_CODE.items()}

# Checked in order; first substring hit wins
REGION_KEYWORDS = [
    ("virginia", "us-east-1"),
    ("ohio", "us-east-2"),
    ("california", "us-west-1"),
    ("oregon", "us-west-2"),
    ("ireland", "eu-west-1"),
    ("frankfurt", "eu-central-1"),
    ("london", "eu-west-2"),
    ("paris", "eu-west-3"),
    ("tokyo", "ap-northeast-1"),
    ("singapore", "ap-southeast-1"),
    ("sydney", "ap-southeast-2"),
    ("mumbai", "ap-south-1"),
    ("seoul", "ap-northeast-2"),
    ("são paulo", "sa-east-1"),
    ("sao paulo", "sa-east-1"),
]

ENGINE_NAME_MAP = {
    "Aurora PostgreSQL": "aurora-postgresql",
    "Aurora MySQL": "aurora-mysql",
    "MySQL": "mysql",
    "PostgreSQL": "postgresql",
    "MariaDB": "mariadb",
    "Oracle": "oracle",
    "SQL Server": "sqlserver",
    "postgres": "postgresql",
    "oracle-se": "oracle",
    "oracle-se1": "oracle",
    "oracle-se2": "oracle",
    "oracle-ee": "oracle",
    "sqlserver-se": "sqlserver",
    "sqlserver-ee": "sqlserver",
    "sqlserver-ex": "sqlserver",
    "sqlserver-web": "sqlserver",
}

_CANONICAL_PAYMENT_OPTIONS = {
    "noupfront": constants.PAYMENT_NO_UPFRONT,
    "partialupfront": constants.PAYMENT_PARTIAL_UPFRONT,
    "allupfront": constants.PAYMENT_ALL_UPFRONT,
}


def is_region_code(value: str) -> bool:
    """True when the value looks like an AWS region code (e.g. ``eu-west-1``)."""
    return (
        "-" in value
        and value.lower() == value
        and " " not in value
        and "(" not in value
        and ")" not in value
    )


def normalize_region(value: str) -> str:
    """
    Map a region label or code to its region code.

    Lookup order: exact label, pass-through for codes, case-insensitive label,
    keyword substring. Unknown values are returned unchanged.

    Examples:
        >>> normalize_region("US East (N. Virginia)")
        'us-east-1'
        >>> normalize_region("eu-west-1")
        'eu-west-1'
        >>> normalize_region("Europe Ireland")
        'eu-west-1'
    """
    if not value:
        return ""

    if value in REGION_NAME_TO_CODE:
        return REGION_NAME_TO_CODE[value]

    if is_region_code(value):
        return value

    lowered = value.lower()
    if lowered in _REGION_NAME_TO_CODE_LOWER:
        return _REGION_NAME_TO_CODE_LOWER[lowered]

    for keyword, code in REGION_KEYWORDS:
        if keyword in lowered:
            return code

    return value


def normalize_payment_option(value: str) -> str:
    """Matching key for a payment option: lowercase, no spaces, hyphens or underscores."""
    return value.lower().replace(" ", "").replace("-", "").replace("_", "")


def canonical_payment_option(value: str) -> str:
    """
    Convert any payment option spelling to its canonical kebab-case form.

    Raises:
        ValueError: If the value is not a known payment option
    """
    key = normalize_payment_option(value)
    if key not in _CANONICAL_PAYMENT_OPTIONS:
        raise ValueError(
            f"Invalid payment option: '{value}'. "
            f"Must be one of: {', '.join(constants.PAYMENT_OPTION_TO_API)}"
        )
    return _CANONICAL_PAYMENT_OPTIONS[key]


def normalize_engine_name(engine: str | None) -> str:
    """Map Cost Explorer and RI engine labels to one canonical engine name."""
    if not engine:
        return ""
    return ENGINE_NAME_MAP.get(engine, engine.lower())
