"""
Purchase client capability.

Concrete per-service purchase transports implement ``PurchaseClient`` and are
registered in a ``PurchaseClientRegistry`` by service. The pipeline only ever
talks to this interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from ri_autopilot.shared import constants
from ri_autopilot.shared.exceptions import PurchaseClientNotConfiguredError
from ri_autopilot.shared.models import (
    ExistingCommitment,
    OfferingDetails,
    PurchaseResult,
    Recommendation,
    Service,
)


logger = logging.getLogger()


class PurchaseClient(ABC):
    """Buys commitments for one service in one region."""

    @abstractmethod
    def purchase(self, rec: Recommendation) -> PurchaseResult:
        """Purchase the recommendation. Failures are returned, not raised."""

    @abstractmethod
    def validate_offering(self, rec: Recommendation) -> None:
        """Raise if no purchasable offering matches the recommendation."""

    @abstractmethod
    def get_offering_details(self, rec: Recommendation) -> OfferingDetails:
        """Pricing details of the offering matching the recommendation."""

    @abstractmethod
    def list_existing_commitments(self) -> list[ExistingCommitment]:
        """Commitments currently owned in this client's region."""


def generate_purchase_id(
    rec: Recommendation, index: int, dry_run: bool, now: Optional[datetime] = None
) -> str:
    """
    Build a readable purchase id, e.g.
    ``dryrun-rds-us-east-1-db-t3-micro-2x-20240101-120000-001``.
    """
    now = now or datetime.now(timezone.utc)
    prefix = "dryrun" if dry_run else "ri"
    region = rec.region or "global"
    resource = rec.instance_type or getattr(rec.service_detail, "plan_type", "") or "commitment"
    resource = resource.replace(".", "-").lower()
    return (
        f"{prefix}-{rec.service.value}-{region}-{resource}-{rec.count}x-"
        f"{now.strftime('%Y%m%d-%H%M%S')}-{index:03d}"
    )


class DryRunPurchaseClient(PurchaseClient):
    """
    Simulates purchases; read-only calls go to the wrapped client when present.

    Args:
        delegate: Real client used for offering lookups and commitment listing
    """

    def __init__(self, delegate: Optional[PurchaseClient] = None):
        self.delegate = delegate
        self._index = 0

    def purchase(self, rec: Recommendation) -> PurchaseResult:
        self._index += 1
        return PurchaseResult(
            recommendation=rec,
            success=True,
            purchase_id=generate_purchase_id(rec, self._index, dry_run=True),
            message=constants.DRY_RUN_MESSAGE,
        )

    def validate_offering(self, rec: Recommendation) -> None:
        if self.delegate is not None:
            self.delegate.validate_offering(rec)

    def get_offering_details(self, rec: Recommendation) -> OfferingDetails:
        if self.delegate is None:
            raise PurchaseClientNotConfiguredError(
                f"No purchase client configured for {rec.service.value}; "
                "offering details are unavailable in a standalone dry run"
            )
        return self.delegate.get_offering_details(rec)

    def list_existing_commitments(self) -> list[ExistingCommitment]:
        if self.delegate is None:
            return []
        return self.delegate.list_existing_commitments()


PurchaseClientFactory = Callable[[Service, str], PurchaseClient]


class PurchaseClientRegistry:
    """Maps services to factories building a purchase client for a region."""

    def __init__(self):
        self._factories: dict[Service, PurchaseClientFactory] = {}

    def register(self, service: Service, factory: PurchaseClientFactory) -> None:
        self._factories[service] = factory

    def has_client(self, service: Service) -> bool:
        return service in self._factories

    def create(self, service: Service, region: str) -> Optional[PurchaseClient]:
        """Build a client for ``service`` in ``region``, or None if none is registered."""
        factory = self._factories.get(service)
        if factory is None:
            return None
        return factory(service, region)
