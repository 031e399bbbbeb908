"""
Tests for the per-service extractor registry.
"""

import pytest

from ri_autopilot.recommender.extractors import (
    EXTRACTORS,
    extract_elasticache,
    extract_memorydb,
    extract_rds,
    get_extractor,
)
from ri_autopilot.shared.exceptions import MissingDetailError, RecordParseError
from ri_autopilot.shared.models import ElastiCacheDetail, Service


def test_every_reservation_service_has_an_extractor():
    """Test that all reservation-based services are registered."""
    expected = {s for s in Service if s is not Service.SAVINGS_PLANS}
    assert set(EXTRACTORS) == expected


def test_get_extractor_unknown_service():
    """Test that Savings Plans has no reservation extractor."""
    with pytest.raises(ValueError, match="No recommendation extractor"):
        get_extractor(Service.SAVINGS_PLANS)


def test_extract_rds_single_az_default():
    """Test that any deployment option other than Multi-AZ is single-AZ."""
    extraction = extract_rds(
        {
            "InstanceDetails": {
                "RDSInstanceDetails": {
                    "InstanceType": "db.t3.micro",
                    "Region": "us-east-1",
                    "DatabaseEngine": "MySQL",
                }
            }
        },
        1,
    )

    assert extraction.instance_type == "db.t3.micro"
    assert extraction.region == "us-east-1"
    assert extraction.detail.engine == "mysql"
    assert extraction.detail.az_config == "single-az"


def test_extract_elasticache_engine_from_product_description(aws_response):
    """Test that the ElastiCache engine comes from ProductDescription."""
    raw = aws_response("reservation_recommendation_elasticache.json")
    details = raw["Recommendations"][0]["RecommendationDetails"][0]

    extraction = extract_elasticache(details, 3)

    assert extraction.region == "us-west-2"
    assert extraction.detail == ElastiCacheDetail(engine="redis", node_type="cache.r6g.large")


def test_extract_missing_section_raises():
    """Test that a record without the service section raises MissingDetailError."""
    with pytest.raises(MissingDetailError, match="RDSInstanceDetails"):
        extract_rds({"InstanceDetails": {}}, 1)


def test_extract_memorydb_requires_instance_details():
    """Test that MemoryDB still requires the InstanceDetails container."""
    with pytest.raises(MissingDetailError, match="InstanceDetails"):
        extract_memorydb({}, 1)


def test_extract_non_object_sections_raise():
    """Test that sections of the wrong shape raise per-record errors."""
    with pytest.raises(MissingDetailError, match="RDSInstanceDetails"):
        extract_rds({"InstanceDetails": {"RDSInstanceDetails": "garbage"}}, 1)
    with pytest.raises(RecordParseError, match="InstanceDetails is not an object"):
        extract_rds({"InstanceDetails": ["garbage"]}, 1)
    with pytest.raises(MissingDetailError, match="MemoryDBInstanceDetails"):
        extract_memorydb({"InstanceDetails": {"MemoryDBInstanceDetails": 42}}, 1)
