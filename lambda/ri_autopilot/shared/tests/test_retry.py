"""
Tests for throttling detection, cancellable waits and the rate-limited retriever.
"""

import threading
import time
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from ri_autopilot.shared.exceptions import OperationCancelledError, RetrievalError
from ri_autopilot.shared.retry import RateLimitedRetriever, is_throttling_error, wait_for


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetReservationPurchaseRecommendation")


def _no_wait_retriever(max_retries=3):
    return RateLimitedRetriever(base_delay=0.0, max_delay=0.0, max_retries=max_retries, jitter=0.0)


# ============================================================================
# is_throttling_error Tests
# ============================================================================


@pytest.mark.parametrize(
    "code", ["Throttling", "ThrottlingException", "TooManyRequestsException", "RequestLimitExceeded"]
)
def test_throttling_codes_are_detected(code):
    """Test that AWS throttling error codes are classified as throttling."""
    assert is_throttling_error(_client_error(code))


def test_other_client_errors_are_not_throttling():
    """Test that non-throttling client errors are not retried."""
    assert not is_throttling_error(_client_error("AccessDeniedException"))


def test_non_client_errors_are_not_throttling():
    """Test that plain exceptions are never classified as throttling."""
    assert not is_throttling_error(RuntimeError("Throttling"))


# ============================================================================
# wait_for Tests
# ============================================================================


def test_wait_for_zero_delay_returns_immediately():
    """Test that a non-positive delay does not block."""
    start = time.monotonic()
    wait_for(0)
    wait_for(-1)
    assert time.monotonic() - start < 0.5


def test_wait_for_raises_when_already_cancelled():
    """Test that a set cancel event raises even for a zero delay."""
    event = threading.Event()
    event.set()
    with pytest.raises(OperationCancelledError):
        wait_for(0, event)


def test_wait_for_wakes_up_on_cancel():
    """Test that a long wait ends promptly once the event is set."""
    event = threading.Event()
    threading.Timer(0.05, event.set).start()

    start = time.monotonic()
    with pytest.raises(OperationCancelledError):
        wait_for(30, event)
    assert time.monotonic() - start < 5


def test_wait_for_completes_without_cancel():
    """Test that an unset event lets a short wait complete normally."""
    wait_for(0.01, threading.Event())


# ============================================================================
# RateLimitedRetriever Tests
# ============================================================================


def test_retriever_rejects_negative_max_retries():
    """Test that a negative retry budget is a configuration error."""
    with pytest.raises(ValueError, match="max_retries"):
        RateLimitedRetriever(max_retries=-1)


def test_compute_delay_doubles_and_caps():
    """Test exponential backoff without jitter, capped at max_delay."""
    retriever = RateLimitedRetriever(base_delay=1.0, max_delay=5.0, max_retries=5, jitter=0.0)
    assert [retriever.compute_delay(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]


def test_compute_delay_jitter_is_bounded():
    """Test that jitter only ever adds up to the configured fraction."""
    retriever = RateLimitedRetriever(base_delay=1.0, max_delay=100.0, max_retries=5, jitter=0.2)
    for _ in range(50):
        delay = retriever.compute_delay(2)
        assert 2.0 <= delay <= 2.4


def test_call_returns_first_success():
    """Test that a successful call is returned without retrying."""
    fn = Mock(return_value={"Recommendations": []})
    assert _no_wait_retriever().call(fn, Service="Amazon Redshift") == {"Recommendations": []}
    fn.assert_called_once_with(Service="Amazon Redshift")


def test_call_retries_throttling_then_succeeds():
    """Test that throttled attempts are retried until one succeeds."""
    fn = Mock(side_effect=[_client_error("ThrottlingException"), _client_error("Throttling"), "ok"])
    assert _no_wait_retriever(max_retries=3).call(fn) == "ok"
    assert fn.call_count == 3


def test_call_gives_up_after_max_retries():
    """Test that max_retries + 1 throttled attempts raise RetrievalError."""
    fn = Mock(side_effect=_client_error("ThrottlingException"))

    with pytest.raises(RetrievalError, match="still throttled") as exc_info:
        _no_wait_retriever(max_retries=2).call(fn)

    assert fn.call_count == 3
    assert exc_info.value.attempts == 3


def test_call_with_zero_retries_makes_one_attempt():
    """Test that max_retries=0 means a single attempt."""
    fn = Mock(side_effect=_client_error("ThrottlingException"))

    with pytest.raises(RetrievalError) as exc_info:
        _no_wait_retriever(max_retries=0).call(fn)

    assert fn.call_count == 1
    assert exc_info.value.attempts == 1


def test_call_does_not_retry_other_errors():
    """Test that non-throttling errors fail immediately."""
    fn = Mock(side_effect=_client_error("AccessDeniedException"))

    with pytest.raises(RetrievalError, match="AccessDeniedException") as exc_info:
        _no_wait_retriever(max_retries=5).call(fn)

    assert fn.call_count == 1
    assert isinstance(exc_info.value.__cause__, ClientError)


def test_call_state_is_fresh_per_call():
    """Test that retry counts do not leak between calls on one retriever."""
    retriever = _no_wait_retriever(max_retries=1)
    first = Mock(side_effect=[_client_error("Throttling"), "a"])
    second = Mock(side_effect=[_client_error("Throttling"), "b"])

    assert retriever.call(first) == "a"
    assert retriever.call(second) == "b"


def test_call_cancelled_during_backoff():
    """Test that a cancelled run stops at the backoff wait."""
    event = threading.Event()
    event.set()
    fn = Mock(side_effect=_client_error("ThrottlingException"))
    retriever = RateLimitedRetriever(base_delay=10.0, max_delay=10.0, max_retries=5, jitter=0.0)

    with pytest.raises(OperationCancelledError):
        retriever.call(fn, cancel_event=event)

    assert fn.call_count == 1
