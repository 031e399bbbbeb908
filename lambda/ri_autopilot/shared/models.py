"""
Canonical data model for commitment recommendations and purchases.

Every stage of the pipeline consumes and produces these frozen dataclasses.
Stages never mutate a value in place; they derive new ones with
``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, ClassVar, Optional

from ri_autopilot.shared import constants
from ri_autopilot.shared.exceptions import InvalidRecommendationError


class Service(str, Enum):
    """Services that sell committed-use discounts."""

    RDS = "rds"
    ELASTICACHE = "elasticache"
    EC2 = "ec2"
    OPENSEARCH = "opensearch"
    REDSHIFT = "redshift"
    MEMORYDB = "memorydb"
    SAVINGS_PLANS = "savingsplans"

    @property
    def display_name(self) -> str:
        return _SERVICE_DISPLAY_NAMES[self]

    @property
    def ce_service(self) -> Optional[str]:
        """Cost Explorer service string, None for Savings Plans."""
        return _SERVICE_CE_NAMES.get(self)

    @property
    def is_region_flexible(self) -> bool:
        return self is Service.SAVINGS_PLANS

    @classmethod
    def parse(cls, value: str) -> Service:
        """Parse a service name, accepting a few common aliases."""
        key = value.strip().lower()
        key = _SERVICE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as e:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown service '{value}'. Must be one of: {valid}") from e


_SERVICE_DISPLAY_NAMES = {
    Service.RDS: "RDS",
    Service.ELASTICACHE: "ElastiCache",
    Service.EC2: "EC2",
    Service.OPENSEARCH: "OpenSearch",
    Service.REDSHIFT: "Redshift",
    Service.MEMORYDB: "MemoryDB",
    Service.SAVINGS_PLANS: "Savings Plans",
}

_SERVICE_CE_NAMES = {
    Service.RDS: constants.CE_SERVICE_RDS,
    Service.ELASTICACHE: constants.CE_SERVICE_ELASTICACHE,
    Service.EC2: constants.CE_SERVICE_EC2,
    Service.OPENSEARCH: constants.CE_SERVICE_OPENSEARCH,
    Service.REDSHIFT: constants.CE_SERVICE_REDSHIFT,
    Service.MEMORYDB: constants.CE_SERVICE_MEMORYDB,
}

_SERVICE_ALIASES = {
    "elasticsearch": "opensearch",
    "es": "opensearch",
    "sp": "savingsplans",
    "savings-plans": "savingsplans",
    "savings_plans": "savingsplans",
}


# ============================================================================
# Service Details
# ============================================================================


@dataclass(frozen=True)
class ServiceDetail:
    """Base for per-service detail variants."""

    SERVICE: ClassVar[Service]

    def service_type(self) -> Service:
        return self.SERVICE

    def detail_description(self) -> str:
        raise NotImplementedError

    def engine_label(self) -> Optional[str]:
        """Engine or variant label used for commitment matching."""
        return None

    def with_count(self, count: int) -> ServiceDetail:
        """Rebuild fields derived from the unit count; most variants have none."""
        return self


@dataclass(frozen=True)
class RDSDetail(ServiceDetail):
    SERVICE: ClassVar[Service] = Service.RDS

    engine: str
    az_config: str = constants.AZ_SINGLE

    def detail_description(self) -> str:
        return f"{self.engine} {self.az_config}"

    def engine_label(self) -> Optional[str]:
        return self.engine or None


@dataclass(frozen=True)
class ElastiCacheDetail(ServiceDetail):
    SERVICE: ClassVar[Service] = Service.ELASTICACHE

    engine: str
    node_type: str

    def detail_description(self) -> str:
        return self.engine

    def engine_label(self) -> Optional[str]:
        return self.engine or None


@dataclass(frozen=True)
class EC2Detail(ServiceDetail):
    SERVICE: ClassVar[Service] = Service.EC2

    platform: str
    tenancy: str = constants.TENANCY_SHARED
    scope: str = constants.SCOPE_REGION

    def detail_description(self) -> str:
        return f"{self.platform} {self.tenancy} {self.scope}"


@dataclass(frozen=True)
class OpenSearchDetail(ServiceDetail):
    SERVICE: ClassVar[Service] = Service.OPENSEARCH

    instance_type: str
    instance_count: int = 1
    master_enabled: bool = False
    master_type: str = ""
    master_count: int = 0
    data_node_storage: int = 0

    def detail_description(self) -> str:
        desc = f"{self.instance_type} x{self.instance_count}"
        if self.master_enabled:
            desc += f" (Master: {self.master_type} x{self.master_count})"
        return desc


@dataclass(frozen=True)
class RedshiftDetail(ServiceDetail):
    SERVICE: ClassVar[Service] = Service.REDSHIFT

    node_type: str
    number_of_nodes: int
    cluster_type: str

    def detail_description(self) -> str:
        return f"{self.node_type} {self.number_of_nodes}-node {self.cluster_type}"

    def with_count(self, count: int) -> RedshiftDetail:
        cluster_type = constants.CLUSTER_SINGLE_NODE if count == 1 else constants.CLUSTER_MULTI_NODE
        return replace(self, number_of_nodes=count, cluster_type=cluster_type)


@dataclass(frozen=True)
class MemoryDBDetail(ServiceDetail):
    SERVICE: ClassVar[Service] = Service.MEMORYDB

    node_type: str
    number_of_nodes: int
    shard_count: int = 1

    def detail_description(self) -> str:
        return f"{self.node_type} {self.number_of_nodes}-node {self.shard_count}-shard"

    def with_count(self, count: int) -> MemoryDBDetail:
        return replace(self, number_of_nodes=count)


@dataclass(frozen=True)
class SavingsPlanDetail(ServiceDetail):
    SERVICE: ClassVar[Service] = Service.SAVINGS_PLANS

    plan_type: str
    hourly_commitment: float
    coverage: str = ""

    def detail_description(self) -> str:
        return f"{self.plan_type} ${self.hourly_commitment:.2f}/hour"


DETAIL_TYPES: tuple[type[ServiceDetail], ...] = (
    RDSDetail,
    ElastiCacheDetail,
    EC2Detail,
    OpenSearchDetail,
    RedshiftDetail,
    MemoryDBDetail,
    SavingsPlanDetail,
)


# ============================================================================
# Recommendation
# ============================================================================


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Recommendation:
    """A single normalized purchase recommendation."""

    service: Service
    region: str
    instance_type: str
    count: int
    payment_option: str
    term_months: int
    service_detail: Optional[ServiceDetail] = None
    estimated_cost: float = 0.0
    savings_percent: float = 0.0
    upfront_cost: float = 0.0
    recurring_monthly_cost: float = 0.0
    estimated_monthly_on_demand: float = 0.0
    account_id: str = ""
    account_name: str = ""
    description: str = ""
    coverage_percent: float = 100.0
    timestamp: datetime = field(default_factory=_utcnow)

    def is_valid(self) -> bool:
        """True when the detail variant belongs to this recommendation's service."""
        return (
            self.service_detail is not None
            and self.service_detail.service_type() == self.service
        )

    def require_detail(self, detail_cls: type[ServiceDetail]) -> Any:
        """Return the service detail, raising when it is missing or of another variant."""
        if not self.is_valid() or not isinstance(self.service_detail, detail_cls):
            raise InvalidRecommendationError(
                f"{self.service.value} recommendation for {self.instance_type} "
                f"does not carry a {detail_cls.__name__}"
            )
        return self.service_detail

    def engine_label(self) -> Optional[str]:
        if self.service_detail is None:
            return None
        return self.service_detail.engine_label()

    def with_count(self, count: int, **changes: Any) -> Recommendation:
        """Derive a copy with a new count, count-derived detail fields and description."""
        if self.service_detail is not None and "service_detail" not in changes:
            changes["service_detail"] = self.service_detail.with_count(count)
        updated = replace(self, count=count, **changes)
        return replace(updated, description=describe_recommendation(updated))


# ============================================================================
# Existing commitments and purchase results
# ============================================================================


@dataclass(frozen=True)
class ExistingCommitment:
    """A commitment already owned by the account (an RI or a Savings Plan)."""

    instance_type: str
    region: str
    payment_option: str
    term_months: int
    count: int
    state: str
    start_time: datetime
    engine: Optional[str] = None
    reservation_id: str = ""
    service: Optional[Service] = None


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of one purchase attempt."""

    recommendation: Recommendation
    success: bool
    purchase_id: str = ""
    reservation_id: str = ""
    message: str = ""
    actual_cost: float = 0.0
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class RecommendationParams:
    """Query parameters for fetching recommendations."""

    service: Service
    region: str = ""
    payment_option: str = constants.PAYMENT_NO_UPFRONT
    term_years: int = 3
    lookback_days: int = 7
    account_id: str = ""


@dataclass(frozen=True)
class OfferingDetails:
    """Pricing information for a purchasable offering."""

    offering_id: str
    instance_type: str
    duration_seconds: int
    payment_option: str
    engine: str = ""
    platform: str = ""
    node_type: str = ""
    multi_az: bool = False
    fixed_price: float = 0.0
    usage_price: float = 0.0
    upfront_cost: float = 0.0
    recurring_cost: float = 0.0
    total_cost: float = 0.0
    effective_hourly_rate: float = 0.0
    currency_code: str = "USD"
    offering_type: str = ""


# ============================================================================
# Descriptions
# ============================================================================


def _describe_rds(rec: Recommendation, d: RDSDetail) -> str:
    return f"{d.engine} {rec.instance_type} {d.az_config} {rec.count}x"


def _describe_elasticache(rec: Recommendation, d: ElastiCacheDetail) -> str:
    return f"{d.engine} {rec.instance_type} {rec.count}x"


def _describe_ec2(rec: Recommendation, d: EC2Detail) -> str:
    return f"{d.platform} {rec.instance_type} {d.tenancy} {rec.count}x"


def _describe_opensearch(rec: Recommendation, d: OpenSearchDetail) -> str:
    desc = f"OpenSearch {d.instance_type} {d.instance_count}x"
    if d.master_enabled:
        desc += f" (Master: {d.master_type} {d.master_count}x)"
    return desc


def _describe_redshift(rec: Recommendation, d: RedshiftDetail) -> str:
    return f"Redshift {d.node_type} {d.number_of_nodes}-node {d.cluster_type}"


def _describe_memorydb(rec: Recommendation, d: MemoryDBDetail) -> str:
    return f"MemoryDB {d.node_type} {d.number_of_nodes}-node {d.shard_count}-shard"


def _describe_savings_plan(rec: Recommendation, d: SavingsPlanDetail) -> str:
    return f"Savings Plan {d.plan_type} ${d.hourly_commitment:.2f}/hour"


DESCRIBERS: dict[type[ServiceDetail], Callable[[Recommendation, Any], str]] = {
    RDSDetail: _describe_rds,
    ElastiCacheDetail: _describe_elasticache,
    EC2Detail: _describe_ec2,
    OpenSearchDetail: _describe_opensearch,
    RedshiftDetail: _describe_redshift,
    MemoryDBDetail: _describe_memorydb,
    SavingsPlanDetail: _describe_savings_plan,
}


def describe_recommendation(rec: Recommendation) -> str:
    """
    Build the human-readable description of a recommendation.

    Deterministic in the recommendation's fields. Recommendations without a
    valid detail fall back to ``"{instance_type} {count}x"``.
    """
    if rec.is_valid():
        describer = DESCRIBERS.get(type(rec.service_detail))
        if describer is not None:
            return describer(rec, rec.service_detail)
    return f"{rec.instance_type} {rec.count}x"
