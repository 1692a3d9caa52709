"""Redis 공유 환율 캐시 엔진

- 조회: 캐시 히트면 그대로 반환, 미스/강제 갱신이면 fetch-and-store
- 스탬피드 방지: Redis SET NX EX 마커로 통화쌍당 동시 업스트림 호출 1회로 제한
- 자동 갱신: auto_update=True 인스턴스는 한 번 적재된 통화쌍을 만료 주기마다 갱신

엔진은 캐시 값을 메모리에 두지 않습니다. 여러 인스턴스/프로세스가 같은 Redis를 공유할 수 있습니다.
"""

from __future__ import annotations

import asyncio
import inspect
import time
import uuid
from decimal import Decimal

from redis.asyncio import Redis

from fx_rate_cache.common.exceptions.errors import (
    StampedeTimeoutError,
    StoreUnavailableError,
    UpstreamUnavailableError,
)
from fx_rate_cache.common.exceptions.exception_rule import classify_exception
from fx_rate_cache.common.logger import PipelineLogger
from fx_rate_cache.common.serde import to_decimal
from fx_rate_cache.core.cache.auto_refresher import AutoRefresher
from fx_rate_cache.core.dto.internal.cache import CurrencyPair, RateKeyBuilder, StampedePolicy
from fx_rate_cache.core.dto.io.cache import FetchLockMarker
from fx_rate_cache.core.types import (
    DEFAULT_EXPIRATION_SECONDS,
    DEFAULT_KEY_PREFIX,
    RateSource,
    SyncOrAsyncCallable,
)
from fx_rate_cache.infra.cache.rate_store import RateStore

logger = PipelineLogger.get_logger("rate_cache", "cache")


class RateCache:
    """업스트림 환율 소스 앞단의 캐싱 데코레이터.

    Example:
        >>> async with RateCache(redis, ForexPythonRateSource(), auto_update=True) as cache:
        >>>     rate = await cache.get_exchange_rate("USD", "EUR")
        >>>     fresh = await cache.convert("USD", "EUR", force_refresh=True)
        >>>     await cache.evict("USD", "EUR")
    """

    def __init__(
        self,
        redis: Redis,
        rate_source: RateSource | SyncOrAsyncCallable,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        auto_update: bool = False,
        *,
        expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS,
        policy: StampedePolicy | None = None,
        refresh_lead_seconds: float = 0.0,
    ) -> None:
        """
        Args:
            redis: 공유 Redis 클라이언트 (커넥션 풀 기반)
            rate_source: `fetch(source, target)`를 가진 소스, 또는 같은 시그니처의 callable
            key_prefix: 캐시 키 접두사 (인스턴스별 네임스페이스)
            auto_update: 백그라운드 자동 갱신 여부
            expiration_seconds: 캐시 TTL 및 자동 갱신 주기
            policy: 스탬피드/타임아웃 정책
            refresh_lead_seconds: 자동 갱신을 만료보다 앞당길 시간
        """
        fetch = getattr(rate_source, "fetch", rate_source)
        if not callable(fetch):
            raise TypeError(f"rate_source must provide fetch(source, target): {rate_source!r}")

        self._rate_source = rate_source
        self._fetch = fetch
        self._is_async_source = inspect.iscoroutinefunction(fetch)
        self._policy = policy or StampedePolicy()
        self._expiration_seconds = self._validate_expiration(expiration_seconds)
        self._refresh_lead_seconds = refresh_lead_seconds

        self.keys = RateKeyBuilder(prefix=key_prefix)
        self.store = RateStore(redis, self.keys, timeout=self._policy.store_timeout)

        self._refresher: AutoRefresher | None = None
        if auto_update:
            self._refresher = AutoRefresher(
                refresh=self._refresh,
                period=self._refresh_period,
                key_prefix=key_prefix,
            )

    # ------------------------------------------------------------------
    # 설정
    # ------------------------------------------------------------------
    @property
    def key_prefix(self) -> str:
        return self.keys.prefix

    @property
    def auto_update(self) -> bool:
        return self._refresher is not None

    @property
    def policy(self) -> StampedePolicy:
        return self._policy

    @property
    def expiration_time(self) -> int:
        return self._expiration_seconds

    def set_expiration_time(self, seconds: int) -> None:
        """이후 쓰기의 TTL과 다음 자동 갱신 주기를 변경한다.

        이미 대기 중인 갱신 타이머는 현재 주기를 마친 뒤 새 값으로 재예약된다.
        """
        self._expiration_seconds = self._validate_expiration(seconds)
        logger.info(
            "만료 시간 변경",
            key_prefix=self.key_prefix,
            expiration_seconds=self._expiration_seconds,
        )

    @staticmethod
    def _validate_expiration(seconds: int) -> int:
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 1:
            raise ValueError(f"expiration time must be a positive integer: {seconds!r}")
        return seconds

    def _refresh_period(self) -> float:
        return self._expiration_seconds - self._refresh_lead_seconds

    # ------------------------------------------------------------------
    # 공개 API
    # ------------------------------------------------------------------
    async def get_exchange_rate(self, source: str, target: str) -> Decimal:
        """캐시된 환율, 없으면 업스트림에서 가져와 캐시 후 반환."""
        return await self.convert(source, target, force_refresh=False)

    async def convert(self, source: str, target: str, force_refresh: bool = False) -> Decimal:
        """환율 조회.

        Args:
            force_refresh: True면 캐시 유무와 관계없이 업스트림을 호출하고 덮어쓴다.

        Raises:
            UpstreamUnavailableError: 업스트림 실패/타임아웃
            StoreUnavailableError: Redis 실패/타임아웃
            StampedeTimeoutError: 동시 fetch 대기 상한 초과
        """
        pair = CurrencyPair(source, target)

        if not force_refresh:
            cached = await self.store.get_rate(pair)
            if cached is not None:
                logger.debug(f"{pair}: cache hit", pair=str(pair))
                return cached
            logger.debug(f"{pair}: cache miss", pair=str(pair))

        rate = await self._fetch_and_store(pair, force=force_refresh)
        if self._refresher is not None:
            self._refresher.register(pair)
        return rate

    async def evict(self, source: str, target: str) -> None:
        """캐시 항목을 삭제한다. 자동 갱신 등록은 유지된다."""
        pair = CurrencyPair(source, target)
        deleted = await self.store.delete(pair)
        logger.info(f"{pair}: evict", pair=str(pair), deleted=deleted)

    async def close(self) -> None:
        """이 인스턴스가 소유한 자동 갱신 태스크를 모두 취소한다."""
        if self._refresher is not None:
            await self._refresher.stop()

    async def __aenter__(self) -> RateCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def is_auto_refreshing(self, source: str, target: str) -> bool:
        return self._refresher is not None and self._refresher.is_registered(
            CurrencyPair(source, target)
        )

    # ------------------------------------------------------------------
    # fetch-and-store
    # ------------------------------------------------------------------
    async def _refresh(self, pair: CurrencyPair) -> Decimal:
        return await self._fetch_and_store(pair, force=True)

    async def _fetch_and_store(self, pair: CurrencyPair, force: bool) -> Decimal:
        """마커를 획득한 호출만 업스트림을 호출한다.
        비강제 조회는 마커 획득 직후 캐시를 다시 확인한다.

        획득하지 못하면 poll_interval 간격으로 최대 max_attempts번:
        - 비강제 조회: 캐시가 채워지면 그 값을 반환
        - 매 회 마커 재획득 시도 (보유자가 죽었거나 실패한 경우 대비)
        강제 갱신은 스스로 가져온 값만 반환한다.
        """
        policy = self._policy
        marker = FetchLockMarker(owner=uuid.uuid4().hex, acquired_at=time.time())

        for attempt in range(policy.max_attempts):
            if await self.store.acquire_lock(pair, marker, policy.lock_ttl):
                return await self._load_with_marker(pair, marker, force)

            if attempt == 0:
                holder = await self.store.lock_holder(pair)
                logger.debug(
                    f"{pair}: fetch in progress elsewhere, waiting",
                    pair=str(pair),
                    holder=holder.owner if holder else None,
                )

            await asyncio.sleep(policy.poll_interval)

            if not force:
                cached = await self.store.get_rate(pair)
                if cached is not None:
                    return cached

        raise StampedeTimeoutError(
            message=(
                f"concurrent fetch not resolved within {policy.max_wait:.1f}s "
                f"({policy.max_attempts} attempts)"
            ),
            pair=str(pair),
        )

    async def _load_with_marker(
        self, pair: CurrencyPair, marker: FetchLockMarker, force: bool
    ) -> Decimal:
        started = time.monotonic()
        try:
            if not force:
                # 직전 보유자가 이미 적재하고 마커를 해제했을 수 있다
                cached = await self.store.get_rate(pair)
                if cached is not None:
                    logger.debug(f"{pair}: filled by previous holder", pair=str(pair))
                    return cached
            rate = await self._fetch_upstream(pair)
            await self.store.set_rate(pair, rate, self._expiration_seconds)
        finally:
            try:
                await self.store.release_lock(pair, marker)
            except StoreUnavailableError as e:
                # 마커는 lock_ttl 후 만료된다
                logger.warning(f"{pair}: fetch 마커 해제 실패 - {e}", pair=str(pair))

        logger.info(
            f"{pair}: rate stored",
            pair=str(pair),
            rate=str(rate),
            ttl=self._expiration_seconds,
            elapsed_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return rate

    async def _fetch_upstream(self, pair: CurrencyPair) -> Decimal:
        timeout = self._policy.fetch_timeout
        try:
            if self._is_async_source:
                raw = await asyncio.wait_for(self._fetch(pair.source, pair.target), timeout)
            else:
                raw = await asyncio.wait_for(
                    asyncio.to_thread(self._fetch, pair.source, pair.target), timeout
                )
            return to_decimal(raw)
        except Exception as e:
            # 소스는 불투명: 어떤 실패든 업스트림 실패로 표준화
            domain, code, retryable = classify_exception(e, "upstream")
            raise UpstreamUnavailableError(
                message=f"rate source failed: {str(e) or type(e).__name__}",
                pair=str(pair),
                original_exception=e,
                error_domain=domain,
                error_code=code,
                retryable=retryable,
            ) from e
