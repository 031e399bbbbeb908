"""
Rate-limited retry with exponential backoff for AWS API calls.

Retries are driven only by the error classification of a botocore
``ClientError`` (throttling codes). Every wait honours an optional
``threading.Event`` so a cancelled run stops promptly instead of sleeping
out its backoff.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from botocore.exceptions import ClientError

from ri_autopilot.shared import constants
from ri_autopilot.shared.exceptions import OperationCancelledError, RetrievalError


logger = logging.getLogger()

T = TypeVar("T")


def is_throttling_error(error: BaseException) -> bool:
    """True when the error is an AWS throttling or rate-limit response."""
    if not isinstance(error, ClientError):
        return False
    error_code = error.response.get("Error", {}).get("Code", "")
    return error_code in constants.THROTTLING_ERROR_CODES


def wait_for(delay: float, cancel_event: Optional[threading.Event] = None) -> None:
    """
    Block for ``delay`` seconds unless cancelled.

    Raises:
        OperationCancelledError: If the cancel event is (or becomes) set
    """
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError("Operation cancelled")

    if delay <= 0:
        return

    if cancel_event is None:
        threading.Event().wait(delay)
        return

    if cancel_event.wait(delay):
        raise OperationCancelledError(f"Operation cancelled while waiting {delay:.2f}s")


@dataclass
class RetrievalState:
    """Per-call retry bookkeeping."""

    attempt_count: int = 0
    next_delay: float = 0.0


class RateLimitedRetriever:
    """
    Wrap a callable with bounded retry on throttling errors.

    A fresh ``RetrievalState`` is created for every ``call()``, so one
    retriever can be reused across fetches without leaking retry counts.

    Args:
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay, in seconds
        max_retries: Retries allowed after the first attempt
        jitter: Maximum jitter as a fraction of the delay (0.2 = up to +20%)
    """

    def __init__(
        self,
        base_delay: float = constants.DEFAULT_RETRY_BASE_DELAY,
        max_delay: float = constants.DEFAULT_RETRY_MAX_DELAY,
        max_retries: int = constants.DEFAULT_MAX_RETRIES,
        jitter: float = constants.DEFAULT_RETRY_JITTER,
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_retries = max_retries
        self.jitter = jitter

    def compute_delay(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (1-based), jitter included."""
        delay = self.base_delay * (2 ** (retry_number - 1))
        if self.jitter > 0:
            delay *= 1 + random.uniform(0, self.jitter)
        return min(delay, self.max_delay)

    def call(
        self,
        fn: Callable[..., T],
        *args: Any,
        cancel_event: Optional[threading.Event] = None,
        **kwargs: Any,
    ) -> T:
        """
        Invoke ``fn`` with retry.

        Returns:
            Whatever ``fn`` returns on its first successful attempt

        Raises:
            RetrievalError: On a non-throttling error, or once retries are exhausted
            OperationCancelledError: If cancelled during a backoff wait
        """
        state = RetrievalState()
        fn_name = getattr(fn, "__name__", repr(fn))

        while True:
            state.attempt_count += 1
            try:
                return fn(*args, **kwargs)
            except OperationCancelledError:
                raise
            except Exception as e:
                if not is_throttling_error(e):
                    raise RetrievalError(
                        f"{fn_name} failed after {state.attempt_count} attempt(s): {e!s}",
                        attempts=state.attempt_count,
                    ) from e

                if state.attempt_count > self.max_retries:
                    logger.error(
                        f"Max retries exceeded for {fn_name} "
                        f"({state.attempt_count} attempts)"
                    )
                    raise RetrievalError(
                        f"{fn_name} still throttled after {state.attempt_count} attempt(s)",
                        attempts=state.attempt_count,
                    ) from e

                state.next_delay = self.compute_delay(state.attempt_count)
                logger.info(
                    f"Rate limited, retrying {fn_name} in {state.next_delay:.2f} seconds "
                    f"(attempt {state.attempt_count + 1}/{self.max_retries + 1})"
                )

            wait_for(state.next_delay, cancel_event)
