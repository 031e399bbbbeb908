"""
Normalize raw Cost Explorer recommendation responses into Recommendations.

A malformed record never fails the batch: it is skipped, logged and reported
back as a warning string alongside the records that did parse.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from ri_autopilot.recommender.extractors import get_extractor
from ri_autopilot.shared import constants
from ri_autopilot.shared.exceptions import (
    AutopilotError,
    InvalidRecommendationError,
    RecordParseError,
)
from ri_autopilot.shared.models import (
    Recommendation,
    RecommendationParams,
    SavingsPlanDetail,
    Service,
    describe_recommendation,
)
from ri_autopilot.shared.normalization import canonical_payment_option


logger = logging.getLogger()


@dataclass
class NormalizationResult:
    recommendations: list[Recommendation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def extend(self, other: NormalizationResult) -> None:
        self.recommendations.extend(other.recommendations)
        self.warnings.extend(other.warnings)


def parse_quantity(raw: Any) -> int:
    """
    Parse a recommended quantity such as ``"5.0"`` or ``"5"`` into an int.

    Decimal values are truncated.

    Raises:
        RecordParseError: If the quantity is missing, non-numeric or negative
    """
    if raw is None or raw == "":
        raise RecordParseError("recommended quantity not found")

    text = str(raw).strip()
    try:
        value = float(text)
    except ValueError:
        try:
            value = float(int(text))
        except ValueError:
            raise RecordParseError(f"failed to parse quantity '{raw}'") from None

    if math.isnan(value) or math.isinf(value):
        raise RecordParseError(f"failed to parse quantity '{raw}'")
    if value < 0:
        raise RecordParseError(f"negative quantity '{raw}'")

    return int(value)


def parse_amount(raw: Any) -> float:
    """Parse a monetary or percentage string, returning 0.0 when missing or garbled."""
    if raw is None:
        return 0.0
    try:
        value = float(str(raw).strip())
    except ValueError:
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def _base_fields(params: RecommendationParams) -> dict[str, Any]:
    return {
        "payment_option": canonical_payment_option(params.payment_option),
        "term_months": params.term_years * 12,
    }


def _normalize_reservation_detail(
    details: dict[str, Any], params: RecommendationParams, base: dict[str, Any]
) -> Optional[Recommendation]:
    if not isinstance(details, dict):
        raise RecordParseError(f"expected an object, got {type(details).__name__}")
    count = parse_quantity(details.get("RecommendedNumberOfInstancesToPurchase"))
    extraction = get_extractor(params.service)(details, count)

    rec = Recommendation(
        service=params.service,
        region=extraction.region,
        instance_type=extraction.instance_type,
        count=count,
        service_detail=extraction.detail,
        estimated_cost=parse_amount(details.get("EstimatedMonthlySavingsAmount")),
        savings_percent=parse_amount(details.get("EstimatedMonthlySavingsPercentage")),
        upfront_cost=parse_amount(details.get("UpfrontCost")),
        recurring_monthly_cost=parse_amount(details.get("RecurringStandardMonthlyCost")),
        estimated_monthly_on_demand=parse_amount(details.get("EstimatedMonthlyOnDemandCost")),
        account_id=details.get("AccountId", "") or "",
        **base,
    )

    if not rec.is_valid():
        raise InvalidRecommendationError(
            f"{params.service.value} extractor produced a mismatched detail"
        )

    if params.region and rec.region != params.region:
        return None

    return replace(rec, description=describe_recommendation(rec))


def _normalize_savings_plan_detail(
    details: dict[str, Any], base: dict[str, Any], plan_type: str
) -> Recommendation:
    if not isinstance(details, dict):
        raise RecordParseError(f"expected an object, got {type(details).__name__}")
    hourly_commitment = parse_amount(details.get("HourlyCommitmentToPurchase"))
    if hourly_commitment <= 0:
        raise RecordParseError("hourly commitment missing or zero")

    plan_name = constants.SP_TYPE_DISPLAY_NAMES.get(plan_type, plan_type)
    rec = Recommendation(
        service=Service.SAVINGS_PLANS,
        region="",
        instance_type="",
        count=1,
        service_detail=SavingsPlanDetail(
            plan_type=plan_name,
            hourly_commitment=hourly_commitment,
            coverage=str(details.get("EstimatedAverageUtilization", "") or ""),
        ),
        estimated_cost=parse_amount(details.get("EstimatedMonthlySavingsAmount")),
        savings_percent=parse_amount(details.get("EstimatedSavingsPercentage")),
        upfront_cost=parse_amount(details.get("UpfrontCost")),
        recurring_monthly_cost=parse_amount(details.get("EstimatedSPCost")),
        estimated_monthly_on_demand=parse_amount(details.get("EstimatedOnDemandCost")),
        account_id=details.get("AccountId", "") or "",
        **base,
    )
    return replace(rec, description=describe_recommendation(rec))


def _skip(result: NormalizationResult, label: str, index: int, error: Exception) -> None:
    message = f"Skipping {label} recommendation detail {index}: {error!s}"
    logger.warning(message)
    result.warnings.append(message)


def normalize_savings_plans(
    raw_response: dict[str, Any], params: RecommendationParams, plan_type: Optional[str] = None
) -> NormalizationResult:
    """Normalize a GetSavingsPlansPurchaseRecommendation response."""
    result = NormalizationResult()
    base = _base_fields(params)
    sp_rec = raw_response.get("SavingsPlansPurchaseRecommendation") or {}
    plan_type = plan_type or sp_rec.get("SavingsPlansType", "")

    for index, details in enumerate(sp_rec.get("SavingsPlansPurchaseRecommendationDetails", [])):
        try:
            result.recommendations.append(
                _normalize_savings_plan_detail(details, base, plan_type)
            )
        except AutopilotError as e:
            _skip(result, f"{plan_type} Savings Plan", index, e)

    return result


def normalize(raw_batch: dict[str, Any], params: RecommendationParams) -> NormalizationResult:
    """
    Convert a raw Cost Explorer response into canonical Recommendations.

    Args:
        raw_batch: GetReservationPurchaseRecommendation response, or a
                   GetSavingsPlansPurchaseRecommendation response when
                   ``params.service`` is Savings Plans
        params: Query parameters; ``payment_option`` and ``term_years`` are
                stamped on every record and ``region`` (when set) filters
                the output

    Returns:
        NormalizationResult with the parsed recommendations in input order
        and one warning per skipped record

    Raises:
        ValueError: If ``params.payment_option`` is not a known payment option
    """
    if params.service is Service.SAVINGS_PLANS:
        return normalize_savings_plans(raw_batch, params)

    result = NormalizationResult()
    base = _base_fields(params)
    label = params.service.display_name
    index = 0
    for group in raw_batch.get("Recommendations") or []:
        if not isinstance(group, dict):
            _skip(result, label, index, RecordParseError("recommendation group is not an object"))
            index += 1
            continue
        for details in group.get("RecommendationDetails") or []:
            try:
                rec = _normalize_reservation_detail(details, params, base)
            except AutopilotError as e:
                _skip(result, label, index, e)
            else:
                if rec is not None:
                    result.recommendations.append(rec)
            index += 1

    logger.info(
        f"Normalized {len(result.recommendations)} {label} recommendations "
        f"({len(result.warnings)} skipped)"
    )
    return result
