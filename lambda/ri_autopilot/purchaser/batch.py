"""Sequential, rate-limited batch purchasing."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ri_autopilot.purchaser.clients import PurchaseClient
from ri_autopilot.shared.exceptions import OperationCancelledError, PurchaseCancelledError
from ri_autopilot.shared.models import PurchaseResult, Recommendation
from ri_autopilot.shared.retry import wait_for


logger = logging.getLogger()


def _purchase_one(client: PurchaseClient, rec: Recommendation) -> PurchaseResult:
    try:
        return client.purchase(rec)
    except Exception as e:
        logger.error(f"Purchase of {rec.description or rec.instance_type} raised: {e!s}")
        return PurchaseResult(recommendation=rec, success=False, message=f"Purchase error: {e!s}")


def batch_purchase(
    client: PurchaseClient,
    recommendations: list[Recommendation],
    delay_between: float = 0.0,
    cancel_event: Optional[threading.Event] = None,
) -> list[PurchaseResult]:
    """
    Purchase each recommendation in order, one result per input.

    A failed item never stops the items after it. ``delay_between`` seconds
    are waited between purchases, not after the last one. The cancel event
    is checked before every purchase.

    Raises:
        PurchaseCancelledError: If cancelled before or between purchases;
            ``completed`` holds the results gathered so far
    """
    results: list[PurchaseResult] = []

    for i, rec in enumerate(recommendations):
        try:
            wait_for(delay_between if i > 0 else 0.0, cancel_event)
        except OperationCancelledError as e:
            raise PurchaseCancelledError(
                f"Batch purchase cancelled after {len(results)} of "
                f"{len(recommendations)} items",
                completed=results,
            ) from e

        logger.info(f"[{i + 1}/{len(recommendations)}] Purchasing: {rec.description}")
        result = _purchase_one(client, rec)
        results.append(result)

        if result.success:
            logger.info(f"Success: {result.message}")
        else:
            logger.warning(f"Failed: {result.message}")

    return results
