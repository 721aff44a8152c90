# instance_orchestrator/core/polling.py

"""
Fixed-interval convergence polling.

역할:
- 인스턴스 ACTIVE 대기, 인스턴스 삭제 확인, trunk/port 삭제 재시도가 모두
  같은 루프를 쓴다.
- 첫 체크는 즉시 실행하고, 이후 interval 마다 다시 체크한다.
- retryable 로 분류된 에러는 삼키고 계속 폴링, 그 외 에러는 즉시 전파.
- deadline 을 넘기면 마지막 일시 에러가 아니라 PollTimeoutError 를 던진다.

취소 신호는 따로 없다. 조기 취소가 필요하면 호출자가 바깥에서 감싸야 하고,
이미 나간 backend 요청은 현재 iteration 을 끝까지 진행한다.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from instance_orchestrator.core.errors import PollTimeoutError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def poll_until(
    interval: float,
    timeout: float,
    check: Callable[[], T],
    *,
    operation: str,
    resource_id: str,
    predicate: Callable[[T], bool] = bool,
    retryable: Callable[[BaseException], bool] = is_retryable,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    check() 결과가 predicate 를 만족할 때까지 폴링한다.

    Parameters
    ----------
    interval : float
        체크 사이 대기 시간(초).
    timeout : float
        전체 deadline(초).
    check : Callable[[], T]
        backend 를 한 번 조회/호출하는 함수.
    operation, resource_id : str
        타임아웃 에러 메시지에 들어갈 작업 이름과 리소스 id.
    predicate : Callable[[T], bool]
        완료 여부 판단. 기본값은 truthiness.
    retryable : Callable[[BaseException], bool]
        삼키고 계속 진행할 에러 분류기.
    sleep, clock :
        테스트에서 실제로 기다리지 않도록 주입 가능.

    Returns
    -------
    T
        predicate 를 만족한 마지막 check() 결과.
    """
    deadline = clock() + timeout
    attempt = 0
    while True:
        attempt += 1
        try:
            value = check()
        except Exception as exc:
            if not retryable(exc):
                raise
            logger.debug(
                "Retryable error during %s of %s (attempt %d): %s",
                operation, resource_id, attempt, exc,
            )
        else:
            if predicate(value):
                return value

        remaining = deadline - clock()
        if remaining <= 0:
            logger.warning("Timed out waiting for %s of %s after %d attempts", operation, resource_id, attempt)
            raise PollTimeoutError(operation, resource_id, timeout)
        sleep(min(interval, remaining))


@dataclass(frozen=True)
class Waiter:
    """sleep/clock 을 묶어서 provisioner 들에 한 번만 넘기기 위한 홀더."""

    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic

    def poll_until(self, interval: float, timeout: float, check: Callable[[], T], **kwargs: Any) -> T:
        return poll_until(interval, timeout, check, sleep=self.sleep, clock=self.clock, **kwargs)
