"""Cost Explorer recommendation source."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Optional

from ri_autopilot.recommender.normalizer import (
    NormalizationResult,
    normalize,
    normalize_savings_plans,
)
from ri_autopilot.shared import constants
from ri_autopilot.shared.exceptions import RetrievalError
from ri_autopilot.shared.models import RecommendationParams, Service
from ri_autopilot.shared.normalization import canonical_payment_option
from ri_autopilot.shared.retry import RateLimitedRetriever


if TYPE_CHECKING:
    from mypy_boto3_ce.client import CostExplorerClient


logger = logging.getLogger()


def build_reservation_request(params: RecommendationParams) -> dict[str, Any]:
    """Build GetReservationPurchaseRecommendation arguments from params."""
    request = {
        "Service": params.service.ce_service,
        "PaymentOption": constants.PAYMENT_OPTION_TO_API[
            canonical_payment_option(params.payment_option)
        ],
        "TermInYears": constants.TERM_YEARS_TO_API[params.term_years],
        "LookbackPeriodInDays": constants.lookback_period_for_days(params.lookback_days),
        "AccountScope": "LINKED",
    }
    if params.account_id:
        request["AccountId"] = params.account_id
    return request


def build_savings_plans_request(params: RecommendationParams, plan_type: str) -> dict[str, Any]:
    """Build GetSavingsPlansPurchaseRecommendation arguments from params."""
    return {
        "SavingsPlansType": plan_type,
        "PaymentOption": constants.PAYMENT_OPTION_TO_API[
            canonical_payment_option(params.payment_option)
        ],
        "TermInYears": constants.TERM_YEARS_TO_API[params.term_years],
        "LookbackPeriodInDays": constants.lookback_period_for_days(params.lookback_days),
        "AccountScope": "LINKED",
    }


class CostExplorerRecommendationSource:
    """
    Fetch purchase recommendations from AWS Cost Explorer.

    Every API page goes through the rate-limited retriever, and every
    blocking wait honours ``cancel_event``.

    Args:
        ce_client: boto3 Cost Explorer client
        retriever: Retry policy for throttled calls
        plan_types: Savings Plans types queried for the savingsplans service
    """

    def __init__(
        self,
        ce_client: CostExplorerClient,
        retriever: Optional[RateLimitedRetriever] = None,
        plan_types: Optional[list[str]] = None,
    ):
        self.ce_client = ce_client
        self.retriever = retriever or RateLimitedRetriever()
        self.plan_types = plan_types or list(constants.ALL_SP_TYPES)

    def fetch(
        self, params: RecommendationParams, cancel_event: Optional[threading.Event] = None
    ) -> dict[str, Any]:
        """Fetch the raw reservation recommendation response, following NextPageToken."""
        request = build_reservation_request(params)
        logger.info(
            f"Fetching {params.service.display_name} recommendations "
            f"(term: {request['TermInYears']}, payment: {request['PaymentOption']}, "
            f"lookback: {request['LookbackPeriodInDays']})"
        )

        merged: dict[str, Any] = {"Recommendations": []}
        next_token = None
        while True:
            page_request = dict(request)
            if next_token:
                page_request["NextPageToken"] = next_token

            response = self.retriever.call(
                self.ce_client.get_reservation_purchase_recommendation,
                cancel_event=cancel_event,
                **page_request,
            )
            logger.debug(f"Cost Explorer response:\n{json.dumps(response, indent=2, default=str)}")

            merged["Recommendations"].extend(response.get("Recommendations", []))
            if "Metadata" in response:
                merged["Metadata"] = response["Metadata"]

            next_token = response.get("NextPageToken")
            if not next_token:
                return merged

    def fetch_savings_plans(
        self,
        params: RecommendationParams,
        plan_type: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> dict[str, Any]:
        """Fetch the raw Savings Plans recommendation response for one plan type."""
        request = build_savings_plans_request(params, plan_type)
        logger.info(f"Fetching {plan_type} Savings Plans recommendations")

        details: list[dict[str, Any]] = []
        merged: dict[str, Any] = {}
        next_token = None
        while True:
            page_request = dict(request)
            if next_token:
                page_request["NextPageToken"] = next_token

            response = self.retriever.call(
                self.ce_client.get_savings_plans_purchase_recommendation,
                cancel_event=cancel_event,
                **page_request,
            )
            recommendation = response.get("SavingsPlansPurchaseRecommendation") or {}
            if not merged:
                merged = dict(recommendation)
            details.extend(recommendation.get("SavingsPlansPurchaseRecommendationDetails", []))

            next_token = response.get("NextPageToken")
            if not next_token:
                break

        merged["SavingsPlansType"] = merged.get("SavingsPlansType") or plan_type
        merged["SavingsPlansPurchaseRecommendationDetails"] = details
        return {"SavingsPlansPurchaseRecommendation": merged}

    def get_recommendations(
        self, params: RecommendationParams, cancel_event: Optional[threading.Event] = None
    ) -> NormalizationResult:
        """
        Fetch and normalize recommendations for one service.

        For Savings Plans each plan type is queried independently; a failed
        plan type is logged and reported as a warning without dropping the
        others.

        Raises:
            RetrievalError: If a reservation recommendation fetch fails
            OperationCancelledError: If cancelled while waiting
        """
        if params.service is not Service.SAVINGS_PLANS:
            return normalize(self.fetch(params, cancel_event), params)

        result = NormalizationResult()
        for plan_type in self.plan_types:
            try:
                raw = self.fetch_savings_plans(params, plan_type, cancel_event)
            except RetrievalError as e:
                message = f"Failed to get {plan_type} recommendations: {e!s}"
                logger.warning(message)
                result.warnings.append(message)
                continue
            result.extend(normalize_savings_plans(raw, params, plan_type))

        logger.info(f"Normalized {len(result.recommendations)} Savings Plans recommendations")
        return result

    def discover_regions(
        self, params: RecommendationParams, cancel_event: Optional[threading.Event] = None
    ) -> list[str]:
        """Regions that have at least one recommendation for ``params.service``, sorted."""
        result = self.get_recommendations(replace(params, region=""), cancel_event)
        regions = sorted({rec.region for rec in result.recommendations if rec.region})
        logger.info(f"Discovered {len(regions)} regions for {params.service.display_name}: {regions}")
        return regions
