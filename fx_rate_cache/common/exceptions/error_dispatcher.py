"""자동 갱신 실패 디스패처

RateRefreshFailedEvent를 구독하여 에러 코드별 전략(심각도/로그 레벨)에 따라 기록합니다.
"""

from __future__ import annotations

from collections import Counter

from fx_rate_cache.common.events import EventBus, RateRefreshFailedEvent
from fx_rate_cache.common.exceptions.exception_rule import get_error_strategy
from fx_rate_cache.common.logger import PipelineLogger

logger = PipelineLogger.get_logger("error_dispatcher", "common")

__all__ = ["ErrorDispatcher"]


class ErrorDispatcher:
    """갱신 실패 관측 싱크

    책임:
    1. 전략 조회 (get_error_strategy)
    2. severity별 로깅
    3. 통화쌍별 실패 횟수 집계 (운영 조회용)
    """

    def __init__(self) -> None:
        self.failures: Counter[str] = Counter()

    def register(self) -> None:
        EventBus.on(RateRefreshFailedEvent, self.dispatch)

    def unregister(self) -> None:
        EventBus.off(RateRefreshFailedEvent, self.dispatch)

    async def dispatch(self, event: RateRefreshFailedEvent) -> None:
        exc = event.exc
        strategy = get_error_strategy(exc.error_code)
        self.failures[event.pair] += 1

        log_method = getattr(logger, strategy.log_level, logger.error)
        log_method(
            f"[{strategy.severity.value.upper()}] auto refresh failed: {exc}",
            severity=strategy.severity.value,
            key_prefix=event.key_prefix,
            failure_count=self.failures[event.pair],
            **exc.to_dict(),
            **(event.context or {}),
        )
