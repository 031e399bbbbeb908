"""
Quantity adjustments applied before purchasing.

``scale`` reduces recommendations to a target coverage percentage;
``apply_count_override`` and ``apply_instance_limit`` are operator controls
for forcing a fixed count or capping the total number of units bought.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace

from ri_autopilot.shared.models import Recommendation, SavingsPlanDetail


logger = logging.getLogger()


def scaled_count(count: int, coverage_percent: float) -> int:
    """ceil(count * coverage / 100), tolerant of float noise such as 7.000000000001."""
    return math.ceil(round(count * coverage_percent / 100.0, 9))


def _scale_savings_plan(
    rec: Recommendation, detail: SavingsPlanDetail, coverage_percent: float
) -> Recommendation:
    # Plans are bought as one unit; coverage shrinks the hourly commitment
    ratio = coverage_percent / 100.0
    return rec.with_count(
        rec.count,
        service_detail=replace(detail, hourly_commitment=detail.hourly_commitment * ratio),
        coverage_percent=coverage_percent,
        upfront_cost=rec.upfront_cost * ratio,
        recurring_monthly_cost=rec.recurring_monthly_cost * ratio,
        estimated_cost=rec.estimated_cost * ratio,
    )


def _scale_one(rec: Recommendation, coverage_percent: float) -> Recommendation:
    if isinstance(rec.service_detail, SavingsPlanDetail):
        return _scale_savings_plan(rec, rec.service_detail, coverage_percent)

    adjusted = scaled_count(rec.count, coverage_percent)
    changes = {"coverage_percent": coverage_percent}
    if rec.count > 0:
        ratio = adjusted / rec.count
        changes.update(
            upfront_cost=rec.upfront_cost * ratio,
            recurring_monthly_cost=rec.recurring_monthly_cost * ratio,
            estimated_cost=rec.estimated_cost * ratio,
        )
    return rec.with_count(adjusted, **changes)


def scale(recommendations: list[Recommendation], coverage_percent: float) -> list[Recommendation]:
    """
    Scale recommended counts to ``coverage_percent`` of the recommendation.

    - ``>= 100``: returned unchanged
    - ``<= 0``: empty list
    - otherwise counts are rounded up, so any positive coverage keeps at
      least one unit; absolute costs follow the count ratio and
      ``savings_percent`` is left alone
    - Savings Plans keep their single unit and scale the hourly commitment
      and absolute costs by the coverage fraction instead
    """
    if coverage_percent >= 100:
        logger.info(f"Coverage: {coverage_percent:.1f}% - using all recommendations")
        return list(recommendations)

    if coverage_percent <= 0:
        logger.info(f"Coverage: {coverage_percent:.1f}% - skipping all recommendations")
        return []

    scaled = [_scale_one(rec, coverage_percent) for rec in recommendations]
    kept = [rec for rec in scaled if rec.count > 0]

    original_total = sum(rec.count for rec in recommendations)
    adjusted_total = sum(rec.count for rec in kept)
    logger.info(
        f"Applied {coverage_percent:.1f}% coverage: {adjusted_total} of "
        f"{original_total} units across {len(kept)} recommendations"
    )
    return kept


def apply_count_override(
    recommendations: list[Recommendation], override_count: int
) -> list[Recommendation]:
    """Force every recommendation to ``override_count`` units (no-op when <= 0)."""
    if override_count <= 0:
        return list(recommendations)
    return [rec.with_count(override_count) for rec in recommendations]


def apply_instance_limit(
    recommendations: list[Recommendation], max_instances: int
) -> list[Recommendation]:
    """
    Keep recommendations in order until ``max_instances`` units are used.

    The last kept recommendation may be cut down to fit. No-op when <= 0.
    """
    if max_instances <= 0:
        return list(recommendations)

    limited: list[Recommendation] = []
    remaining = max_instances
    for rec in recommendations:
        if remaining <= 0:
            break
        if rec.count > remaining:
            rec = rec.with_count(remaining)
        limited.append(rec)
        remaining -= rec.count

    if len(limited) < len(recommendations):
        logger.info(f"Instance limit {max_instances} kept {len(limited)} recommendations")
    return limited
