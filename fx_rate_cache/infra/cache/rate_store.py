"""환율 캐시와 fetch 마커에 대한 Redis 접근 계층.

구성 요소
- RateStore: 공개 API. 환율 값(GET/SET EX/DEL)과 fetch 마커(SET NX EX/소유자 확인 DEL) 관리.

설계 원칙
- I/O 경계에서만 직렬화/검증 수행, 내부는 Decimal/CurrencyPair 유지.
- 모든 명령은 타임아웃으로 제한되며, 실패는 StoreUnavailableError로 표준화.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Awaitable, TypeVar

from redis.asyncio import Redis

from fx_rate_cache.common.exceptions.errors import StoreUnavailableError
from fx_rate_cache.common.exceptions.exception_rule import classify_exception
from fx_rate_cache.common.logger import PipelineLogger
from fx_rate_cache.common.serde import decode_rate, encode_rate
from fx_rate_cache.core.dto.internal.cache import CurrencyPair, RateKeyBuilder
from fx_rate_cache.core.dto.io.cache import FetchLockMarker
from fx_rate_cache.core.types import PARSE_EXCEPTIONS, STORE_EXCEPTIONS, TIMEOUT_EXCEPTIONS

logger = PipelineLogger.get_logger("redis", "rate_store")

T = TypeVar("T")

# 소유자가 일치할 때만 마커 삭제 (만료 후 다른 호출이 획득한 마커를 지우지 않도록)
RELEASE_LOCK_LUA = (
    "if redis.call('GET', KEYS[1]) == ARGV[1] then "
    "return redis.call('DEL', KEYS[1]) "
    "else return 0 end"
)


class RateStore:
    """환율 캐시 저장소 (Redis)."""

    def __init__(self, redis: Redis, keys: RateKeyBuilder, timeout: float = 5.0) -> None:
        self.redis = redis
        self.keys = keys
        self.timeout = timeout

    async def _call(self, op: str, pair: CurrencyPair, aw: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(aw, timeout=self.timeout)
        except (*TIMEOUT_EXCEPTIONS, *STORE_EXCEPTIONS) as e:
            domain, code, retryable = classify_exception(e, "store")
            raise StoreUnavailableError(
                message=f"redis {op} failed: {str(e) or type(e).__name__}",
                pair=str(pair),
                original_exception=e,
                error_domain=domain,
                error_code=code,
                retryable=retryable,
            ) from e

    async def get_rate(self, pair: CurrencyPair) -> Decimal | None:
        """캐시된 환율을 읽는다. 없거나 만료되었으면 None.

        손상된 값은 미스로 취급하여 다음 fetch가 덮어쓰도록 한다.
        """
        key = self.keys.data(pair)
        raw = await self._call("get", pair, self.redis.get(key))
        if raw is None:
            return None
        try:
            return decode_rate(raw)
        except PARSE_EXCEPTIONS as e:
            logger.warning(f"손상된 환율 값 무시: {key}", pair=str(pair), error=str(e))
            return None

    async def set_rate(self, pair: CurrencyPair, rate: Decimal, ttl: int) -> None:
        """값을 교체하고 TTL을 갱신한다."""
        await self._call(
            "set", pair, self.redis.set(self.keys.data(pair), encode_rate(rate), ex=ttl)
        )

    async def delete(self, pair: CurrencyPair) -> bool:
        """값 키를 삭제한다. 키가 없어도 오류가 아니다.

        Returns: 삭제된 키가 있으면 True
        """
        deleted = await self._call("delete", pair, self.redis.delete(self.keys.data(pair)))
        return bool(deleted)

    async def acquire_lock(self, pair: CurrencyPair, marker: FetchLockMarker, ttl: int) -> bool:
        """fetch 마커를 SET NX EX로 획득 시도한다."""
        acquired = await self._call(
            "acquire_lock",
            pair,
            self.redis.set(self.keys.lock(pair), marker.to_bytes(), nx=True, ex=ttl),
        )
        return bool(acquired)

    async def release_lock(self, pair: CurrencyPair, marker: FetchLockMarker) -> bool:
        """자신이 보유한 마커만 해제한다."""
        released = await self._call(
            "release_lock",
            pair,
            self.redis.eval(RELEASE_LOCK_LUA, 1, self.keys.lock(pair), marker.to_bytes()),
        )
        return bool(released)

    async def lock_holder(self, pair: CurrencyPair) -> FetchLockMarker | None:
        """현재 마커 보유자 (진단용). 마커가 없거나 해석 불가면 None."""
        raw = await self._call("get_lock", pair, self.redis.get(self.keys.lock(pair)))
        if raw is None:
            return None
        try:
            return FetchLockMarker.from_raw(raw)
        except PARSE_EXCEPTIONS:
            return None
