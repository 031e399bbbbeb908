"""Exception hierarchy for RI autopilot."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from ri_autopilot.shared.models import PurchaseResult


class AutopilotError(Exception):
    """Base class for all RI autopilot errors."""


# Per-record errors, recovered locally by the normalizer


class RecordParseError(AutopilotError):
    """A raw recommendation record could not be parsed."""


class MissingDetailError(AutopilotError):
    """A raw recommendation record lacks its service-specific section."""


class InvalidRecommendationError(AutopilotError):
    """A recommendation's detail variant does not match its service."""


class PurchaseClientNotConfiguredError(AutopilotError):
    """An operation needs a real purchase client and none is registered."""


class RetrievalError(AutopilotError):
    """Fetching from an external source failed, possibly after retries."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class OperationCancelledError(AutopilotError):
    """The run was cancelled while waiting."""


class PurchaseCancelledError(OperationCancelledError):
    """Batch purchasing was cancelled; carries results completed so far."""

    def __init__(self, message: str, completed: list[PurchaseResult]):
        super().__init__(message)
        self.completed = completed
