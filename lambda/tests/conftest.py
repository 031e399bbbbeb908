"""
Shared pytest fixtures for all Lambda tests.

Provides AWS API response fixtures loaded from anonymized Cost Explorer
responses, plus builders for the canonical model objects.

Tests mock ONLY AWS clients (and webhook HTTP); everything else runs for real.
"""

import copy
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from ri_autopilot.shared.models import (
    ExistingCommitment,
    RDSDetail,
    Recommendation,
    Service,
    describe_recommendation,
)


FIXTURES_DIR = Path(__file__).parent / "fixtures" / "aws_responses"

RESERVATION_FIXTURES = {
    "rds": "reservation_recommendation_rds.json",
    "elasticache": "reservation_recommendation_elasticache.json",
    "ec2": "reservation_recommendation_ec2.json",
    "opensearch": "reservation_recommendation_opensearch.json",
    "redshift": "reservation_recommendation_redshift.json",
    "memorydb": "reservation_recommendation_memorydb.json",
}


@pytest.fixture
def aws_response():
    """
    Load AWS API response fixtures.

    Usage:
        def test_something(aws_response):
            response = aws_response('reservation_recommendation_rds.json')

    Available fixtures:
        - reservation_recommendation_{rds,elasticache,ec2,opensearch,redshift,memorydb}.json
        - recommendation_compute_sp.json
    """

    def _load(filename: str) -> dict:
        fixture_path = FIXTURES_DIR / filename
        if not fixture_path.exists():
            raise FileNotFoundError(f"Fixture file not found: {fixture_path}")
        with open(fixture_path) as f:
            return json.load(f)

    return _load


@pytest.fixture
def aws_reservation_recommendation_rds(aws_response):
    """Fixture for an RDS GetReservationPurchaseRecommendation response."""
    return aws_response("reservation_recommendation_rds.json")


@pytest.fixture
def aws_recommendation_compute_sp(aws_response):
    """Fixture for a Compute SP GetSavingsPlansPurchaseRecommendation response."""
    return aws_response("recommendation_compute_sp.json")


@pytest.fixture
def aws_mock_builder(aws_response):
    """
    Build AWS API responses with easy overrides while maintaining real structure.

    Usage:
        def test_rds(aws_mock_builder, mock_ce_client):
            mock_ce_client.get_reservation_purchase_recommendation.return_value = (
                aws_mock_builder.reservation_recommendation('rds', count='7')
            )
    """

    class AwsMockBuilder:
        """Builder for AWS API responses with customization support."""

        def __init__(self, loader):
            self._load = loader

        def reservation_recommendation(
            self, service, details_count=None, count=None, region=None, empty=False
        ):
            """
            Create a GetReservationPurchaseRecommendation response.

            Args:
                service: Fixture key ('rds', 'ec2', ...)
                details_count: Keep only the first N details (default: all)
                count: Override RecommendedNumberOfInstancesToPurchase on every detail
                region: Override the region label on every detail
                empty: Return a response with no recommendations

            Returns:
                dict: Cost Explorer reservation recommendation response
            """
            if empty:
                return {"Recommendations": []}

            data = copy.deepcopy(self._load(RESERVATION_FIXTURES[service]))
            for group in data["Recommendations"]:
                if details_count is not None:
                    group["RecommendationDetails"] = group["RecommendationDetails"][:details_count]
                for detail in group["RecommendationDetails"]:
                    if count is not None:
                        detail["RecommendedNumberOfInstancesToPurchase"] = count
                    if region is not None:
                        for section in (detail.get("InstanceDetails") or {}).values():
                            section["Region"] = region
            return data

        def savings_plans_recommendation(
            self, plan_type="COMPUTE_SP", hourly_commitment=None, empty=False
        ):
            """
            Create a GetSavingsPlansPurchaseRecommendation response.

            Args:
                plan_type: SavingsPlansType to stamp on the response
                hourly_commitment: Override HourlyCommitmentToPurchase
                empty: Return a response with no recommendation details
            """
            data = copy.deepcopy(self._load("recommendation_compute_sp.json"))
            rec = data["SavingsPlansPurchaseRecommendation"]
            rec["SavingsPlansType"] = plan_type
            if empty:
                rec["SavingsPlansPurchaseRecommendationDetails"] = []
            if hourly_commitment is not None:
                for detail in rec["SavingsPlansPurchaseRecommendationDetails"]:
                    detail["HourlyCommitmentToPurchase"] = str(hourly_commitment)
            return data

        def client_error(self, code="ThrottlingException", operation="GetReservationPurchaseRecommendation"):
            """Create a botocore ClientError with the given error code."""
            return ClientError(
                {"Error": {"Code": code, "Message": f"{code} raised by test"}}, operation
            )

    return AwsMockBuilder(aws_response)


@pytest.fixture
def make_recommendation():
    """
    Factory for canonical Recommendations (RDS by default).

    Usage:
        rec = make_recommendation(count=5, region='eu-west-1')
    """

    def _make(**overrides):
        fields = {
            "service": Service.RDS,
            "region": "us-east-1",
            "instance_type": "db.r6g.large",
            "count": 4,
            "payment_option": "no-upfront",
            "term_months": 36,
            "service_detail": RDSDetail(engine="postgresql", az_config="multi-az"),
            "estimated_cost": 400.0,
            "savings_percent": 38.5,
            "upfront_cost": 0.0,
            "recurring_monthly_cost": 600.0,
            "account_id": "123456789012",
        }
        fields.update(overrides)
        rec = Recommendation(**fields)
        if "description" not in overrides:
            rec = Recommendation(**{**fields, "description": describe_recommendation(rec)})
        return rec

    return _make


@pytest.fixture
def make_commitment():
    """Factory for ExistingCommitments matching the default make_recommendation()."""

    def _make(**overrides):
        fields = {
            "instance_type": "db.r6g.large",
            "region": "us-east-1",
            "payment_option": "No Upfront",
            "term_months": 36,
            "count": 1,
            "state": "active",
            "start_time": datetime(2025, 1, 14, 10, 0, tzinfo=timezone.utc),
            "engine": "postgres",
            "service": Service.RDS,
        }
        fields.update(overrides)
        return ExistingCommitment(**fields)

    return _make
