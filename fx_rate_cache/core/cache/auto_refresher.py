"""통화쌍별 백그라운드 자동 갱신

auto_update=True 엔진이 적재한 통화쌍마다 태스크 하나를 두고, 만료 주기마다 강제 갱신합니다.
갱신 실패는 호출자에게 전파되지 않고 EventBus(RateRefreshFailedEvent)로 보고됩니다.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Awaitable, Callable

from fx_rate_cache.common.events import EventBus, RateRefreshFailedEvent
from fx_rate_cache.common.exceptions.errors import RateCacheError
from fx_rate_cache.common.logger import PipelineLogger
from fx_rate_cache.core.dto.internal.cache import CurrencyPair

logger = PipelineLogger.get_logger("auto_refresher", "cache")

MIN_REFRESH_PERIOD = 0.1


class AutoRefresher:
    """통화쌍별 백그라운드 자동 갱신 전담 클래스

    책임:
    - 통화쌍마다 하나의 갱신 태스크 관리 (엔진 인스턴스 소유)
    - 매 주기 강제 갱신 후, 그 시점의 주기 값으로 다음 실행 예약
    - 갱신 실패는 이벤트 버스로 보고하고 루프는 유지
    """

    def __init__(
        self,
        refresh: Callable[[CurrencyPair], Awaitable[Decimal]],
        period: Callable[[], float],
        key_prefix: str,
    ) -> None:
        self._refresh = refresh
        self._period = period
        self.key_prefix = key_prefix

        self._tasks: dict[CurrencyPair, asyncio.Task[None]] = {}
        self._is_running = True

    def register(self, pair: CurrencyPair) -> bool:
        """통화쌍 갱신 태스크를 등록한다. 이미 실행 중이면 아무것도 하지 않는다.

        Returns: 새 태스크를 시작했으면 True
        """
        if not self._is_running:
            return False

        task = self._tasks.get(pair)
        if task is not None and not task.done():
            return False

        self._tasks[pair] = asyncio.create_task(
            self._refresh_loop(pair), name=f"auto-refresh:{self.key_prefix}/{pair}"
        )
        logger.info(f"{pair}: 자동 갱신 등록", pair=str(pair), key_prefix=self.key_prefix)
        return True

    def is_registered(self, pair: CurrencyPair) -> bool:
        task = self._tasks.get(pair)
        return task is not None and not task.done()

    @property
    def registered_pairs(self) -> frozenset[CurrencyPair]:
        return frozenset(p for p, t in self._tasks.items() if not t.done())

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def stop(self) -> None:
        """모든 갱신 태스크를 취소하고 종료를 기다린다."""
        self._is_running = False

        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        if tasks:
            logger.info(f"자동 갱신 중단: {len(tasks)}개", key_prefix=self.key_prefix)

    async def _refresh_loop(self, pair: CurrencyPair) -> None:
        while self._is_running:
            # 주기는 매번 다시 읽는다 (만료 시간 변경은 다음 주기부터 반영)
            period = max(MIN_REFRESH_PERIOD, self._period())
            try:
                await asyncio.sleep(period)
                rate = await self._refresh(pair)
                logger.debug(f"{pair}: 자동 갱신 완료", pair=str(pair), rate=str(rate))
            except RateCacheError as e:
                # 기존 캐시 항목은 유지, 다음 주기 계속
                logger.warning(f"{pair}: 자동 갱신 실패 - {e}", pair=str(pair))
                await EventBus.emit(
                    RateRefreshFailedEvent(
                        exc=e,
                        pair=str(pair),
                        key_prefix=self.key_prefix,
                        context={"phase": "auto_refresh", "period_seconds": period},
                    )
                )
            except Exception as e:
                logger.error(f"{pair}: 자동 갱신 루프 에러 - {e}", exc_info=True, pair=str(pair))
                break
