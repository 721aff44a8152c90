"""
이벤트 알림 중복 방지(De-dup).

컨트롤러가 같은 실패를 계속 재시도하면 FailedCreateServer 가 반복해서 나온다.
메모리 기반으로 TTL 내 같은 키는 1회만 내보낸다.
프로세스 단위 동작이므로 여러 워커 환경에서는 워커마다 따로 센다.
"""

from __future__ import annotations

import time
from threading import RLock
from typing import Callable, Dict


class TTLDeduper:
    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._lock = RLock()
        self._sent: Dict[str, float] = {}

    def _cleanup(self, now: float) -> None:
        expired = [k for k, ts in self._sent.items() if now - ts > self.ttl]
        for k in expired:
            self._sent.pop(k, None)

    def should_send(self, key: str) -> bool:
        """True 면 전송 가능, False 면 스킵."""
        with self._lock:
            now = self._clock()
            self._cleanup(now)
            return key not in self._sent

    def mark_sent(self, key: str) -> None:
        with self._lock:
            self._sent[key] = self._clock()
