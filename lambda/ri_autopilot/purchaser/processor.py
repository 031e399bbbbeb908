"""
Service processor: the end-to-end purchase run.

For every configured service: resolve regions, fetch and normalize
recommendations per region, apply filters, reconcile against recently bought
commitments, scale to the coverage target, apply operator limits and run the
batch purchase. Everything is sequential and in a fixed order so dry runs
are reproducible.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from ri_autopilot.purchaser.batch import batch_purchase
from ri_autopilot.purchaser.clients import (
    DryRunPurchaseClient,
    PurchaseClient,
    PurchaseClientRegistry,
)
from ri_autopilot.purchaser.coverage import apply_count_override, apply_instance_limit, scale
from ri_autopilot.purchaser.reconciler import reconcile
from ri_autopilot.recommender.filters import RecommendationFilter
from ri_autopilot.recommender.source import CostExplorerRecommendationSource
from ri_autopilot.shared import constants
from ri_autopilot.shared.exceptions import (
    OperationCancelledError,
    PurchaseCancelledError,
    RetrievalError,
)
from ri_autopilot.shared.models import (
    ExistingCommitment,
    PurchaseResult,
    Recommendation,
    RecommendationParams,
    Service,
)
from ri_autopilot.shared.normalization import canonical_payment_option, normalize_region
from ri_autopilot.shared.retry import wait_for


logger = logging.getLogger()


@dataclass(frozen=True)
class ProcessorConfig:
    services: list[Service]
    regions: list[str] = field(default_factory=list)
    coverage_percent: float = 80.0
    dry_run: bool = True
    payment_option: str = constants.PAYMENT_NO_UPFRONT
    term_years: int = 3
    lookback_days: int = 7
    account_id: str = ""
    purchase_delay_seconds: float = 2.0
    duplicate_lookback_hours: int = constants.DEFAULT_DUPLICATE_LOOKBACK_HOURS
    skip_duplicate_check: bool = False
    max_instances: int = 0
    override_count: int = 0
    filters: RecommendationFilter = field(default_factory=RecommendationFilter)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> ProcessorConfig:
        """Build from the dict returned by load_configuration()."""
        return cls(
            services=[Service.parse(s) for s in config.get("services", [])],
            regions=[normalize_region(r) for r in config.get("regions") or []],
            coverage_percent=config.get("coverage_percent", 80.0),
            dry_run=config.get("dry_run", True),
            payment_option=canonical_payment_option(
                config.get("payment_option", constants.PAYMENT_NO_UPFRONT)
            ),
            term_years=config.get("term_years", 3),
            lookback_days=config.get("lookback_days", 7),
            account_id=config.get("account_id", ""),
            purchase_delay_seconds=config.get("purchase_delay_seconds", 2.0),
            duplicate_lookback_hours=config.get(
                "duplicate_lookback_hours", constants.DEFAULT_DUPLICATE_LOOKBACK_HOURS
            ),
            skip_duplicate_check=config.get("skip_duplicate_check", False),
            max_instances=config.get("max_instances", 0),
            override_count=config.get("override_count", 0),
            filters=RecommendationFilter.from_config(config),
        )


@dataclass
class RegionProcessingStats:
    region: str
    recommendations_found: int = 0
    recommendations_selected: int = 0
    instances: int = 0
    successful_purchases: int = 0
    failed_purchases: int = 0
    error: str = ""


@dataclass
class ServiceStats:
    service: Service
    regions_processed: int = 0
    recommendations_found: int = 0
    recommendations_selected: int = 0
    instances_processed: int = 0
    successful_purchases: int = 0
    failed_purchases: int = 0
    total_estimated_savings: float = 0.0
    region_stats: list[RegionProcessingStats] = field(default_factory=list)
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service.value,
            "regions_processed": self.regions_processed,
            "recommendations_found": self.recommendations_found,
            "recommendations_selected": self.recommendations_selected,
            "instances_processed": self.instances_processed,
            "successful_purchases": self.successful_purchases,
            "failed_purchases": self.failed_purchases,
            "total_estimated_savings": round(self.total_estimated_savings, 2),
            "error": self.error,
        }


@dataclass
class RunSummary:
    dry_run: bool = True
    recommendations: list[Recommendation] = field(default_factory=list)
    results: list[PurchaseResult] = field(default_factory=list)
    service_stats: dict[Service, ServiceStats] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def successful_purchases(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_purchases(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def has_failures(self) -> bool:
        """True when any attempted purchase failed."""
        return self.failed_purchases > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "recommendations_selected": len(self.recommendations),
            "successful_purchases": self.successful_purchases,
            "failed_purchases": self.failed_purchases,
            "warnings": len(self.warnings),
            "services": [stats.to_dict() for stats in self.service_stats.values()],
        }


def _failed_results(recs: list[Recommendation], message: str) -> list[PurchaseResult]:
    return [PurchaseResult(recommendation=rec, success=False, message=message) for rec in recs]


class ServiceProcessor:
    """
    Composition root for one purchase run.

    Args:
        source: Recommendation source (Cost Explorer)
        clients: Purchase client factories per service
        config: Run configuration
        cancel_event: Set to stop the run at the next wait
        now: Reference time for duplicate reconciliation (defaults to now)
    """

    def __init__(
        self,
        source: CostExplorerRecommendationSource,
        clients: PurchaseClientRegistry,
        config: ProcessorConfig,
        cancel_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None,
    ):
        self.source = source
        self.clients = clients
        self.config = config
        self.cancel_event = cancel_event
        self.now = now
        self._remaining_instances = config.max_instances
        self._client_cache: dict[tuple[Service, str], Optional[PurchaseClient]] = {}

    def process_all_services(self) -> RunSummary:
        summary = RunSummary(dry_run=self.config.dry_run)
        logger.info(
            f"Processing {len(self.config.services)} services "
            f"(coverage: {self.config.coverage_percent}%, dry_run: {self.config.dry_run})"
        )

        for service in self.config.services:
            stats = ServiceStats(service=service)
            summary.service_stats[service] = stats
            try:
                self._process_service(service, stats, summary)
            except OperationCancelledError as e:
                logger.warning(f"Run cancelled while processing {service.display_name}: {e!s}")
                summary.cancelled = True
            self._log_service_summary(stats)
            if summary.cancelled:
                break

        logger.info(
            f"Run complete: {summary.successful_purchases} successful, "
            f"{summary.failed_purchases} failed"
            + (" (cancelled)" if summary.cancelled else "")
        )
        return summary

    # ------------------------------------------------------------------

    def _base_params(self, service: Service) -> RecommendationParams:
        return RecommendationParams(
            service=service,
            payment_option=self.config.payment_option,
            term_years=self.config.term_years,
            lookback_days=self.config.lookback_days,
            account_id=self.config.account_id,
        )

    def _resolve_regions(self, service: Service, params: RecommendationParams) -> list[str]:
        if service.is_region_flexible:
            return [""]
        if self.config.regions:
            return list(self.config.regions)
        logger.info(f"Auto-discovering regions for {service.display_name}")
        return self.source.discover_regions(params, self.cancel_event)

    def _client_for(self, service: Service, region: str) -> Optional[PurchaseClient]:
        key = (service, region)
        if key not in self._client_cache:
            self._client_cache[key] = self.clients.create(service, region)
        return self._client_cache[key]

    def _existing_commitments(self, service: Service, regions: list[str]) -> list[ExistingCommitment]:
        existing: list[ExistingCommitment] = []
        for region in regions:
            client = self._client_for(service, region)
            if client is None:
                continue
            try:
                existing.extend(client.list_existing_commitments())
            except Exception as e:
                logger.warning(
                    f"Could not list existing {service.display_name} commitments "
                    f"in {region or 'all regions'}: {e!s}; continuing without them"
                )
        return existing

    def _select(self, recs: list[Recommendation]) -> list[Recommendation]:
        selected = scale(recs, self.config.coverage_percent)
        selected = apply_count_override(selected, self.config.override_count)

        if self.config.max_instances > 0:
            if self._remaining_instances <= 0:
                selected = []
            else:
                selected = apply_instance_limit(selected, self._remaining_instances)
                self._remaining_instances -= sum(rec.count for rec in selected)

        valid = [rec for rec in selected if rec.is_valid()]
        if len(valid) < len(selected):
            logger.warning(f"Dropped {len(selected) - len(valid)} invalid recommendations")
        return valid

    def _purchase(
        self, service: Service, region: str, recs: list[Recommendation]
    ) -> list[PurchaseResult]:
        real_client = self._client_for(service, region)
        if self.config.dry_run:
            return batch_purchase(DryRunPurchaseClient(real_client), recs, 0.0, self.cancel_event)

        if real_client is None:
            logger.warning(f"No purchase client registered for {service.display_name}")
            return _failed_results(recs, constants.NO_CLIENT_MESSAGE)

        return batch_purchase(
            real_client, recs, self.config.purchase_delay_seconds, self.cancel_event
        )

    def _process_service(self, service: Service, stats: ServiceStats, summary: RunSummary) -> None:
        params = self._base_params(service)

        try:
            regions = self._resolve_regions(service, params)
        except RetrievalError as e:
            stats.error = f"Failed to discover regions: {e!s}"
            logger.error(f"{service.display_name}: {stats.error}")
            return

        if not regions:
            logger.info(f"No regions with {service.display_name} recommendations found")
            return

        # Fetch per region
        fetched: dict[str, list[Recommendation]] = {}
        region_stats: dict[str, RegionProcessingStats] = {}
        for region in regions:
            wait_for(0.0, self.cancel_event)
            rstats = RegionProcessingStats(region=region)
            region_stats[region] = rstats
            stats.region_stats.append(rstats)
            try:
                result = self.source.get_recommendations(
                    replace(params, region=region), self.cancel_event
                )
            except RetrievalError as e:
                rstats.error = str(e)
                logger.error(f"Failed to fetch {service.display_name} recommendations "
                             f"for {region or 'all regions'}: {e!s}")
                continue

            summary.warnings.extend(result.warnings)
            recs = self.config.filters.apply(result.recommendations)
            rstats.recommendations_found = len(recs)
            stats.regions_processed += 1
            fetched[region] = recs

        all_recs = [rec for recs in fetched.values() for rec in recs]
        stats.recommendations_found = len(all_recs)
        if not all_recs:
            return

        # Reconcile once across the whole service
        if not self.config.skip_duplicate_check:
            existing = self._existing_commitments(service, list(fetched))
            reconciled = reconcile(
                all_recs, existing, self.config.duplicate_lookback_hours, self.now
            )
            fetched = {
                region: [rec for rec in reconciled if rec.region == region] for region in fetched
            }

        # Select and purchase per region
        cancelled = False
        for region, recs in fetched.items():
            rstats = region_stats[region]
            selected = self._select(recs)
            rstats.recommendations_selected = len(selected)
            rstats.instances = sum(rec.count for rec in selected)
            if not selected:
                continue

            if cancelled:
                results = _failed_results(selected, constants.CANCELLED_MESSAGE)
            else:
                try:
                    results = self._purchase(service, region, selected)
                except PurchaseCancelledError as e:
                    cancelled = True
                    results = e.completed + _failed_results(
                        selected[len(e.completed):], constants.CANCELLED_MESSAGE
                    )

            rstats.successful_purchases = sum(1 for r in results if r.success)
            rstats.failed_purchases = len(results) - rstats.successful_purchases

            summary.recommendations.extend(selected)
            summary.results.extend(results)
            stats.recommendations_selected += len(selected)
            stats.instances_processed += rstats.instances
            stats.successful_purchases += rstats.successful_purchases
            stats.failed_purchases += rstats.failed_purchases
            stats.total_estimated_savings += sum(rec.estimated_cost for rec in selected)

        if cancelled:
            raise OperationCancelledError(f"{service.display_name} purchases cancelled")

    def _log_service_summary(self, stats: ServiceStats) -> None:
        logger.info(
            f"{stats.service.display_name} summary: regions={stats.regions_processed}, "
            f"recommendations={stats.recommendations_selected}, "
            f"instances={stats.instances_processed}, "
            f"successful={stats.successful_purchases}, failed={stats.failed_purchases}, "
            f"estimated monthly savings=${stats.total_estimated_savings:.2f}"
        )
