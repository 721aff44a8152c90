# tests/test_polling.py

"""
poll_until 단위 테스트.
"""

import pytest

from instance_orchestrator.core.errors import BackendError, BackendRetryableError, PollTimeoutError
from instance_orchestrator.core.polling import poll_until


def _poll(clock, check, **kwargs):
    return poll_until(
        kwargs.pop("interval", 10.0),
        kwargs.pop("timeout", 60.0),
        check,
        operation="test",
        resource_id="res-1",
        sleep=clock.sleep,
        clock=clock.time,
        **kwargs,
    )


def test_first_check_is_immediate(clock):
    """첫 체크가 성공하면 sleep 없이 바로 반환."""
    assert _poll(clock, lambda: "done") == "done"
    assert clock.sleeps == []


def test_polls_at_fixed_interval_until_predicate(clock):
    values = iter(["BUILD", "BUILD", "ACTIVE"])
    result = _poll(clock, lambda: next(values), predicate=lambda v: v == "ACTIVE")

    assert result == "ACTIVE"
    assert clock.sleeps == [10.0, 10.0]


def test_retryable_errors_are_swallowed(clock):
    attempts = {"n": 0}

    def check():
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise BackendRetryableError("conflict", status_code=409)
        return True

    assert _poll(clock, check) is True
    assert attempts["n"] == 3


def test_non_retryable_error_aborts_immediately(clock):
    def check():
        raise BackendError("boom", status_code=500)

    with pytest.raises(BackendError, match="boom"):
        _poll(clock, check)
    assert clock.sleeps == []


def test_timeout_names_resource_not_transient_error(clock):
    """deadline 을 넘기면 마지막 일시 에러가 아니라 타임아웃 에러."""

    def check():
        raise BackendRetryableError("still busy", status_code=503)

    with pytest.raises(PollTimeoutError) as excinfo:
        _poll(clock, check, interval=5.0, timeout=30.0)

    assert excinfo.value.resource_id == "res-1"
    assert "res-1" in str(excinfo.value)
    assert "still busy" not in str(excinfo.value)
    assert clock.now == pytest.approx(30.0)


def test_last_sleep_is_capped_at_deadline(clock):
    with pytest.raises(PollTimeoutError):
        _poll(clock, lambda: False, interval=10.0, timeout=25.0)

    assert clock.sleeps == [10.0, 10.0, 5.0]
