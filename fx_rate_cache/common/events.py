"""이벤트 정의 및 Event Bus

엔진 내부(백그라운드 자동 갱신 등)에서 호출자에게 전파할 수 없는 실패를
관측 계층으로 넘기기 위한 통로입니다. 이벤트는 순수 데이터 객체입니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from fx_rate_cache.common.exceptions.errors import RateCacheError
from fx_rate_cache.common.logger import PipelineLogger

logger = PipelineLogger.get_logger("event_bus", "common")

EventHandler = Callable[[Any], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RateRefreshFailedEvent:
    """자동 갱신 실패 이벤트 (순수 데이터)

    기존 캐시 항목은 그대로 유지되며, 다음 주기 갱신도 예약된 상태입니다.
    """

    exc: RateCacheError
    pair: str
    key_prefix: str
    context: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=datetime.now)


class EventBus:
    """전역 이벤트 버스 (의존성 없음)

    - 타입 기반 핸들러 등록
    - 핸들러 실패는 로그만 남기고 다음 핸들러로 진행
    """

    _handlers: dict[type, list[EventHandler]] = {}

    @classmethod
    async def emit(cls, event: Any) -> None:
        event_type = type(event)
        for handler in cls._handlers.get(event_type, []):
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler failed: {e}",
                    exc_info=True,
                    event_type=event_type.__name__,
                    handler=getattr(handler, "__name__", repr(handler)),
                )

    @classmethod
    def on(cls, event_type: type, handler: EventHandler) -> None:
        cls._handlers.setdefault(event_type, []).append(handler)

    @classmethod
    def off(cls, event_type: type, handler: EventHandler) -> None:
        handlers = cls._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    @classmethod
    def clear(cls) -> None:
        """모든 핸들러 제거 (테스트용)"""
        cls._handlers.clear()


__all__ = ["EventBus", "RateRefreshFailedEvent"]
