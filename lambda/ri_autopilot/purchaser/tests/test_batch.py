"""
Tests for sequential batch purchasing.
"""

import threading
import time

import pytest

from ri_autopilot.purchaser.batch import batch_purchase
from ri_autopilot.purchaser.clients import PurchaseClient
from ri_autopilot.shared.exceptions import PurchaseCancelledError
from ri_autopilot.shared.models import PurchaseResult


class RecordingClient(PurchaseClient):
    """In-memory purchase client failing on selected instance types."""

    def __init__(self, fail_types=(), raise_types=()):
        self.fail_types = set(fail_types)
        self.raise_types = set(raise_types)
        self.purchased = []

    def purchase(self, rec):
        self.purchased.append(rec.instance_type)
        if rec.instance_type in self.raise_types:
            raise RuntimeError("InsufficientReservedInstanceCapacity")
        if rec.instance_type in self.fail_types:
            return PurchaseResult(recommendation=rec, success=False, message="Offering not found")
        return PurchaseResult(
            recommendation=rec, success=True, purchase_id=f"ri-{rec.instance_type}",
            reservation_id=f"res-{rec.instance_type}", message="Purchased",
        )

    def validate_offering(self, rec):
        return None

    def get_offering_details(self, rec):
        raise NotImplementedError

    def list_existing_commitments(self):
        return []


@pytest.fixture
def three_recs(make_recommendation):
    """Three recommendations with distinct instance types."""
    return [
        make_recommendation(instance_type=t)
        for t in ["db.t3.micro", "db.t3.small", "db.t3.medium"]
    ]


def test_failure_does_not_stop_batch(three_recs):
    """Test that item 2 failing still attempts item 3, preserving order."""
    client = RecordingClient(fail_types={"db.t3.small"})

    results = batch_purchase(client, three_recs)

    assert [r.recommendation.instance_type for r in results] == [
        "db.t3.micro", "db.t3.small", "db.t3.medium",
    ]
    assert [r.success for r in results] == [True, False, True]
    assert client.purchased == ["db.t3.micro", "db.t3.small", "db.t3.medium"]


def test_raised_exception_becomes_failed_result(three_recs):
    """Test that a client exception is captured in that item's result."""
    client = RecordingClient(raise_types={"db.t3.micro"})

    results = batch_purchase(client, three_recs)

    assert not results[0].success
    assert results[0].message == "Purchase error: InsufficientReservedInstanceCapacity"
    assert [r.success for r in results[1:]] == [True, True]


def test_empty_batch_makes_no_calls():
    """Test that an empty input performs no purchases."""
    client = RecordingClient()
    assert batch_purchase(client, [], delay_between=10) == []
    assert client.purchased == []


def test_no_delay_after_last_item(make_recommendation):
    """Test that a single item does not wait out the delay."""
    start = time.monotonic()
    batch_purchase(RecordingClient(), [make_recommendation()], delay_between=5)
    assert time.monotonic() - start < 1


def test_delay_between_items(three_recs):
    """Test that the delay is applied between items."""
    start = time.monotonic()
    batch_purchase(RecordingClient(), three_recs, delay_between=0.05)
    assert time.monotonic() - start >= 0.1


def test_cancel_during_delay_returns_completed(three_recs):
    """Test that cancellation during a wait carries the completed results."""
    client = RecordingClient()
    cancel = threading.Event()
    threading.Timer(0.05, cancel.set).start()

    with pytest.raises(PurchaseCancelledError) as exc_info:
        batch_purchase(client, three_recs, delay_between=30, cancel_event=cancel)

    assert [r.recommendation.instance_type for r in exc_info.value.completed] == ["db.t3.micro"]
    assert client.purchased == ["db.t3.micro"]
