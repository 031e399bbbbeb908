"""
Duplicate purchase prevention.

Recommendations from Cost Explorer lag behind purchases by up to a day, so a
commitment bought in the last run still shows up as recommended. Recently
started commitments are subtracted from matching recommendations before
anything is bought.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from ri_autopilot.shared import constants
from ri_autopilot.shared.models import ExistingCommitment, Recommendation
from ri_autopilot.shared.normalization import normalize_engine_name, normalize_payment_option


logger = logging.getLogger()


def filter_recent_commitments(
    commitments: list[ExistingCommitment], cutoff: datetime
) -> list[ExistingCommitment]:
    """Active or payment-pending commitments that started after ``cutoff``."""
    return [
        c
        for c in commitments
        if c.state in constants.RECONCILABLE_STATES and c.start_time > cutoff
    ]


def commitment_matches(rec: Recommendation, commitment: ExistingCommitment) -> bool:
    """
    True when an existing commitment covers the same capacity as ``rec``.

    Engines are compared only when both sides carry one.
    """
    if rec.instance_type.lower() != commitment.instance_type.lower():
        return False

    if rec.region.lower() != commitment.region.lower():
        return False

    rec_engine = normalize_engine_name(rec.engine_label())
    commitment_engine = normalize_engine_name(commitment.engine)
    if rec_engine and commitment_engine and rec_engine != commitment_engine:
        return False

    if normalize_payment_option(rec.payment_option) != normalize_payment_option(
        commitment.payment_option
    ):
        return False

    return rec.term_months == commitment.term_months


def reconcile(
    recommendations: list[Recommendation],
    existing_commitments: list[ExistingCommitment],
    lookback_hours: int = constants.DEFAULT_DUPLICATE_LOOKBACK_HOURS,
    now: Optional[datetime] = None,
) -> list[Recommendation]:
    """
    Reduce recommendations by recently purchased matching commitments.

    Args:
        recommendations: Normalized recommendations (not modified)
        existing_commitments: Commitments currently owned (not modified)
        lookback_hours: Only commitments started within this window count
        now: Reference time, defaults to the current UTC time

    Returns:
        New list in input order; counts floored at zero and zero-count
        recommendations dropped. Recommendations without a valid service
        detail pass through untouched.
    """
    now = now or datetime.now(timezone.utc)
    recent = filter_recent_commitments(
        existing_commitments, now - timedelta(hours=lookback_hours)
    )

    adjusted: list[Recommendation] = []
    for rec in recommendations:
        if not rec.is_valid():
            adjusted.append(rec)
            continue

        existing_count = sum(c.count for c in recent if commitment_matches(rec, c))
        if existing_count == 0:
            adjusted.append(rec)
            continue

        new_count = max(rec.count - existing_count, 0)
        logger.info(
            f"Adjusting {rec.service.display_name} {rec.instance_type} in {rec.region}: "
            f"{rec.count} recommended - {existing_count} existing = {new_count} to purchase"
        )
        if new_count > 0:
            adjusted.append(rec.with_count(new_count))

    if recent:
        logger.info(
            f"Found {len(recent)} commitments purchased in the last {lookback_hours} hours; "
            f"recommendations adjusted from {len(recommendations)} to {len(adjusted)}"
        )

    return adjusted
