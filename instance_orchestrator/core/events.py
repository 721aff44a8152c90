# instance_orchestrator/core/events.py

"""
Event sink.

생성/삭제의 최종 결과마다 이벤트를 한 번 남긴다. 키는 논리 인스턴스 이름.
오케스트레이터는 sink 를 호출만 하고, 어떻게 기록할지는 구현체가 정한다.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from instance_orchestrator.core.alerts.dedupe import TTLDeduper
from instance_orchestrator.core.alerts.discord_alert import send_discord_event

logger = logging.getLogger(__name__)

EventType = Literal["Normal", "Warning"]

SUCCESSFUL_CREATE_SERVER = "SuccessfulCreateServer"
FAILED_CREATE_SERVER = "FailedCreateServer"
SUCCESSFUL_DELETE_SERVER = "SuccessfulDeleteServer"
FAILED_DELETE_SERVER = "FailedDeleteServer"


class Event(BaseModel):
    object_name: str
    type: EventType
    reason: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EventRecorder(ABC):
    @abstractmethod
    def record(self, event: Event) -> None:
        ...

    def eventf(self, object_name: str, reason: str, message: str) -> None:
        self.record(Event(object_name=object_name, type="Normal", reason=reason, message=message))

    def warnf(self, object_name: str, reason: str, message: str) -> None:
        self.record(Event(object_name=object_name, type="Warning", reason=reason, message=message))


class LoggingEventRecorder(EventRecorder):
    def record(self, event: Event) -> None:
        level = logging.WARNING if event.type == "Warning" else logging.INFO
        logger.log(level, "[%s] %s: %s", event.object_name, event.reason, event.message)


class MemoryEventRecorder(EventRecorder):
    """테스트/디버깅용. 기록된 이벤트를 순서대로 들고 있다."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def record(self, event: Event) -> None:
        self.events.append(event)

    def reasons(self) -> List[str]:
        return [e.reason for e in self.events]


class DiscordEventRecorder(EventRecorder):
    """
    Discord 웹훅으로 이벤트를 보낸다.

    같은 (이름, reason) 의 Warning 은 TTL 안에서 한 번만 보낸다.
    전송 실패는 로그만 남기고 오케스트레이션 흐름에는 영향을 주지 않는다.
    """

    def __init__(self, webhook_url: str, *, dedup_ttl: float = 600, deduper: Optional[TTLDeduper] = None):
        self.webhook_url = webhook_url
        self.deduper = deduper or TTLDeduper(dedup_ttl)

    def record(self, event: Event) -> None:
        LoggingEventRecorder().record(event)

        key = f"{event.object_name}:{event.reason}"
        if event.type == "Warning" and not self.deduper.should_send(key):
            logger.debug("Suppressing duplicate event %s", key)
            return

        result = send_discord_event(
            self.webhook_url,
            title=event.reason,
            description=event.message,
            warning=event.type == "Warning",
            fields={"instance": event.object_name, "type": event.type},
            footer=key,
        )
        if result.get("sent") and event.type == "Warning":
            self.deduper.mark_sent(key)
