"""
Shared constants for RI autopilot.

Centralizes string constants to prevent typos and provide single source of truth.
Cost Explorer values use AWS naming; internal values use lowercase kebab-case.
"""

# ============================================================================
# Cost Explorer Service Names
# ============================================================================
# Values accepted by GetReservationPurchaseRecommendation's Service parameter

CE_SERVICE_RDS = "Amazon Relational Database Service"
CE_SERVICE_ELASTICACHE = "Amazon ElastiCache"
CE_SERVICE_EC2 = "Amazon Elastic Compute Cloud - Compute"
CE_SERVICE_OPENSEARCH = "Amazon OpenSearch Service"
CE_SERVICE_ELASTICSEARCH = "Amazon Elasticsearch Service"
CE_SERVICE_REDSHIFT = "Amazon Redshift"
CE_SERVICE_MEMORYDB = "Amazon MemoryDB Service"


# ============================================================================
# Payment Options
# ============================================================================

PAYMENT_NO_UPFRONT = "no-upfront"
PAYMENT_PARTIAL_UPFRONT = "partial-upfront"
PAYMENT_ALL_UPFRONT = "all-upfront"

PAYMENT_OPTION_TO_API = {
    PAYMENT_NO_UPFRONT: "NO_UPFRONT",
    PAYMENT_PARTIAL_UPFRONT: "PARTIAL_UPFRONT",
    PAYMENT_ALL_UPFRONT: "ALL_UPFRONT",
}


# ============================================================================
# Terms and Lookback
# ============================================================================

TERM_YEARS_TO_API = {
    1: "ONE_YEAR",
    3: "THREE_YEARS",
}

# Cost Explorer only accepts these three lookback windows
LOOKBACK_SEVEN_DAYS = "SEVEN_DAYS"
LOOKBACK_THIRTY_DAYS = "THIRTY_DAYS"
LOOKBACK_SIXTY_DAYS = "SIXTY_DAYS"

VALID_LOOKBACK_DAYS = [7, 30, 60]


def lookback_period_for_days(days: int) -> str:
    """Map a lookback in days to the closest Cost Explorer period (rounding up)."""
    if days <= 7:
        return LOOKBACK_SEVEN_DAYS
    if days <= 30:
        return LOOKBACK_THIRTY_DAYS
    return LOOKBACK_SIXTY_DAYS


# ============================================================================
# Savings Plan Types (Cost Explorer SavingsPlansType values)
# ============================================================================

SP_TYPE_COMPUTE = "COMPUTE_SP"
SP_TYPE_EC2_INSTANCE = "EC2_INSTANCE_SP"
SP_TYPE_SAGEMAKER = "SAGEMAKER_SP"
SP_TYPE_DATABASE = "DATABASE_SP"

ALL_SP_TYPES = [SP_TYPE_COMPUTE, SP_TYPE_EC2_INSTANCE, SP_TYPE_SAGEMAKER, SP_TYPE_DATABASE]

SP_TYPE_DISPLAY_NAMES = {
    SP_TYPE_COMPUTE: "Compute",
    SP_TYPE_EC2_INSTANCE: "EC2Instance",
    SP_TYPE_SAGEMAKER: "SageMaker",
    SP_TYPE_DATABASE: "Database",
}


# ============================================================================
# Commitment States and Reconciliation
# ============================================================================

STATE_ACTIVE = "active"
STATE_PAYMENT_PENDING = "payment-pending"

RECONCILABLE_STATES = frozenset({STATE_ACTIVE, STATE_PAYMENT_PENDING})

DEFAULT_DUPLICATE_LOOKBACK_HOURS = 24


# ============================================================================
# Service Detail Values
# ============================================================================

AZ_SINGLE = "single-az"
AZ_MULTI = "multi-az"

TENANCY_SHARED = "shared"

SCOPE_REGION = "region"
SCOPE_AVAILABILITY_ZONE = "availability-zone"

CLUSTER_SINGLE_NODE = "single-node"
CLUSTER_MULTI_NODE = "multi-node"

# Cost Explorer returns no usable node type for MemoryDB recommendations
MEMORYDB_PLACEHOLDER_NODE_TYPE = "db.r6gd.xlarge"


# ============================================================================
# Retry Defaults
# ============================================================================

DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_RETRY_MAX_DELAY = 30.0
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_JITTER = 0.2

THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "LimitExceededException",
        "RequestThrottled",
        "RequestThrottledException",
        "SlowDown",
        "ProvisionedThroughputExceededException",
    }
)


# ============================================================================
# Purchase Results
# ============================================================================

DRY_RUN_MESSAGE = "Dry run - no actual purchase"
CANCELLED_MESSAGE = "Cancelled"
NO_CLIENT_MESSAGE = "Skipped - no purchase client registered"
