"""
Per-service extractors for Cost Explorer reservation recommendation details.

Each extractor reads the service-specific ``InstanceDetails`` section of a
``RecommendationDetails`` entry and returns the instance type, region and
service detail variant. Extractors are registered by service so adding a
service means adding one function here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ri_autopilot.shared import constants
from ri_autopilot.shared.exceptions import MissingDetailError, RecordParseError
from ri_autopilot.shared.models import (
    EC2Detail,
    ElastiCacheDetail,
    MemoryDBDetail,
    OpenSearchDetail,
    RDSDetail,
    RedshiftDetail,
    Service,
    ServiceDetail,
)
from ri_autopilot.shared.normalization import normalize_engine_name, normalize_region


@dataclass(frozen=True)
class Extraction:
    instance_type: str
    region: str
    detail: ServiceDetail


Extractor = Callable[[dict[str, Any], int], Extraction]

EXTRACTORS: dict[Service, Extractor] = {}


def register_extractor(service: Service) -> Callable[[Extractor], Extractor]:
    """Register an extractor for a service."""

    def decorator(func: Extractor) -> Extractor:
        EXTRACTORS[service] = func
        return func

    return decorator


def get_extractor(service: Service) -> Extractor:
    try:
        return EXTRACTORS[service]
    except KeyError:
        raise ValueError(f"No recommendation extractor registered for {service.value}") from None


def _instance_details(details: dict[str, Any]) -> dict[str, Any]:
    instance_details = details.get("InstanceDetails")
    if instance_details is None:
        raise MissingDetailError("InstanceDetails not found in recommendation details")
    if not isinstance(instance_details, dict):
        raise RecordParseError("InstanceDetails is not an object")
    return instance_details


def _section(details: dict[str, Any], key: str) -> dict[str, Any]:
    section = _instance_details(details).get(key)
    if not section or not isinstance(section, dict):
        raise MissingDetailError(f"{key} not found in recommendation details")
    return section


@register_extractor(Service.RDS)
def extract_rds(details: dict[str, Any], count: int) -> Extraction:
    rds = _section(details, "RDSInstanceDetails")
    az_config = (
        constants.AZ_MULTI if rds.get("DeploymentOption") == "Multi-AZ" else constants.AZ_SINGLE
    )
    return Extraction(
        instance_type=rds.get("InstanceType", ""),
        region=normalize_region(rds.get("Region", "")),
        detail=RDSDetail(
            engine=normalize_engine_name(rds.get("DatabaseEngine", "")),
            az_config=az_config,
        ),
    )


@register_extractor(Service.ELASTICACHE)
def extract_elasticache(details: dict[str, Any], count: int) -> Extraction:
    cache = _section(details, "ElastiCacheInstanceDetails")
    node_type = cache.get("NodeType", "")
    return Extraction(
        instance_type=node_type,
        region=normalize_region(cache.get("Region", "")),
        detail=ElastiCacheDetail(
            engine=normalize_engine_name(cache.get("ProductDescription", "")),
            node_type=node_type,
        ),
    )


@register_extractor(Service.EC2)
def extract_ec2(details: dict[str, Any], count: int) -> Extraction:
    ec2 = _section(details, "EC2InstanceDetails")
    scope = (
        constants.SCOPE_AVAILABILITY_ZONE
        if ec2.get("AvailabilityZone")
        else constants.SCOPE_REGION
    )
    return Extraction(
        instance_type=ec2.get("InstanceType", ""),
        region=normalize_region(ec2.get("Region", "")),
        detail=EC2Detail(
            platform=ec2.get("Platform", ""),
            tenancy=ec2.get("Tenancy") or constants.TENANCY_SHARED,
            scope=scope,
        ),
    )


@register_extractor(Service.OPENSEARCH)
def extract_opensearch(details: dict[str, Any], count: int) -> Extraction:
    es = _section(details, "ESInstanceDetails")
    instance_class = es.get("InstanceClass")
    instance_size = es.get("InstanceSize")
    instance_type = f"{instance_class}.{instance_size}" if instance_class and instance_size else ""
    return Extraction(
        instance_type=instance_type,
        region=normalize_region(es.get("Region", "")),
        detail=OpenSearchDetail(instance_type=instance_type, instance_count=1),
    )


@register_extractor(Service.REDSHIFT)
def extract_redshift(details: dict[str, Any], count: int) -> Extraction:
    redshift = _section(details, "RedshiftInstanceDetails")
    node_type = redshift.get("NodeType", "")
    cluster_type = constants.CLUSTER_SINGLE_NODE if count == 1 else constants.CLUSTER_MULTI_NODE
    return Extraction(
        instance_type=node_type,
        region=normalize_region(redshift.get("Region", "")),
        detail=RedshiftDetail(node_type=node_type, number_of_nodes=count, cluster_type=cluster_type),
    )


@register_extractor(Service.MEMORYDB)
def extract_memorydb(details: dict[str, Any], count: int) -> Extraction:
    # Cost Explorer has no dedicated MemoryDB section yet; read one if present
    memorydb = _instance_details(details).get("MemoryDBInstanceDetails") or {}
    if not isinstance(memorydb, dict):
        raise MissingDetailError("MemoryDBInstanceDetails is not an object")
    node_type = memorydb.get("NodeType") or constants.MEMORYDB_PLACEHOLDER_NODE_TYPE
    return Extraction(
        instance_type=node_type,
        region=normalize_region(memorydb.get("Region", "")),
        detail=MemoryDBDetail(node_type=node_type, number_of_nodes=count, shard_count=1),
    )
