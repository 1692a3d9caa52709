from __future__ import annotations

import asyncio
import time
from decimal import Decimal
from typing import Any, Iterable

from redis.exceptions import ConnectionError as RedisConnectionError

from fx_rate_cache.core.cache.rate_cache import RateCache
from fx_rate_cache.core.dto.internal.cache import StampedePolicy


class FakeRedis:
    """문자열 키 + EX/NX + 마커 해제 Lua만 흉내내는 인메모리 Redis."""

    def __init__(self) -> None:
        self._values: dict[str, bytes] = {}
        self._expires: dict[str, float] = {}
        self.set_calls: list[tuple[str, bytes, int | None, bool]] = []

    def _purge(self, key: str) -> None:
        deadline = self._expires.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self._values.pop(key, None)
            self._expires.pop(key, None)

    @staticmethod
    def _to_bytes(value: Any) -> bytes:
        if isinstance(value, bytes):
            return value
        return str(value).encode()

    async def get(self, key: str) -> bytes | None:
        self._purge(key)
        return self._values.get(key)

    async def set(
        self, key: str, value: Any, ex: int | None = None, nx: bool = False
    ) -> bool | None:
        self._purge(key)
        data = self._to_bytes(value)
        self.set_calls.append((key, data, ex, nx))
        if nx and key in self._values:
            return None
        self._values[key] = data
        if ex:
            self._expires[key] = time.monotonic() + ex
        else:
            self._expires.pop(key, None)
        return True

    async def delete(self, key: str) -> int:
        self._purge(key)
        self._expires.pop(key, None)
        return 1 if self._values.pop(key, None) is not None else 0

    async def ttl(self, key: str) -> int:
        self._purge(key)
        if key not in self._values:
            return -2
        deadline = self._expires.get(key)
        if deadline is None:
            return -1
        return max(0, round(deadline - time.monotonic()))

    async def eval(self, lua: str, numkeys: int, key: str, token: Any) -> int:
        # compare-and-delete
        self._purge(key)
        if self._values.get(key) == self._to_bytes(token):
            await self.delete(key)
            return 1
        return 0

    # Testing helpers
    def keys(self) -> list[str]:
        for key in list(self._values):
            self._purge(key)
        return sorted(self._values)

    def put(self, key: str, value: Any, ex: float | None = None) -> None:
        self._values[key] = self._to_bytes(value)
        if ex:
            self._expires[key] = time.monotonic() + ex


class FailingRedis(FakeRedis):
    """모든 명령이 연결 오류로 실패"""

    async def get(self, key: str) -> bytes | None:
        raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: Any, ex: int | None = None, nx: bool = False):
        raise RedisConnectionError("connection refused")

    async def delete(self, key: str) -> int:
        raise RedisConnectionError("connection refused")


class HangingRedis(FakeRedis):
    """get이 응답하지 않는 Redis (타임아웃 확인용)"""

    async def get(self, key: str) -> bytes | None:
        await asyncio.sleep(10)
        return None


class DelayedLockRedis:
    """공유 FakeRedis에 위임하되 SET NX만 지연 (느린 네트워크의 마커 획득)"""

    def __init__(self, inner: FakeRedis, delay: float) -> None:
        self._inner = inner
        self.delay = delay

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    async def set(
        self, key: str, value: Any, ex: int | None = None, nx: bool = False
    ) -> bool | None:
        if nx:
            await asyncio.sleep(self.delay)
        return await self._inner.set(key, value, ex=ex, nx=nx)


class CountingSource:
    """동기 소스. 호출 횟수를 세고 rates를 순서대로 반환 (마지막 값 반복)."""

    def __init__(self, *rates: Any, delay: float = 0.0) -> None:
        self.rates: list[Any] = list(rates) or [Decimal("0.85")]
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    def _next(self) -> Any:
        index = min(len(self.calls) - 1, len(self.rates) - 1)
        return self.rates[index]

    def fetch(self, source: str, target: str) -> Any:
        self.calls.append((source, target))
        if self.delay:
            time.sleep(self.delay)
        return self._next()


class AsyncCountingSource(CountingSource):
    """비동기 소스 (이벤트 루프에서 직접 await)"""

    async def fetch(self, source: str, target: str) -> Any:
        self.calls.append((source, target))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._next()


class PairRateSource:
    """통화쌍별 고정 값 소스"""

    def __init__(self, rates: dict[tuple[str, str], Any]) -> None:
        self.rates = rates
        self.calls: list[tuple[str, str]] = []

    def fetch(self, source: str, target: str) -> Any:
        self.calls.append((source, target))
        return self.rates[(source, target)]


class FailingSource:
    def __init__(self, exc: BaseException | None = None) -> None:
        self.exc = exc or RuntimeError("upstream down")
        self.calls = 0

    def fetch(self, source: str, target: str) -> Any:
        self.calls += 1
        raise self.exc


class FlakySource:
    """outcomes를 순서대로 소비: 예외면 raise, 아니면 값 반환 (마지막 항목 반복)"""

    def __init__(self, outcomes: Iterable[Any]) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    def fetch(self, source: str, target: str) -> Any:
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def build_policy(**overrides: Any) -> StampedePolicy:
    params: dict[str, Any] = {
        "lock_ttl": 5,
        "poll_interval": 0.01,
        "max_attempts": 300,
        "fetch_timeout": 2.0,
        "store_timeout": 1.0,
    }
    params.update(overrides)
    return StampedePolicy(**params)


def build_cache(
    redis: FakeRedis | None = None,
    source: Any = None,
    *,
    policy: StampedePolicy | None = None,
    **overrides: Any,
) -> RateCache:
    return RateCache(
        redis if redis is not None else FakeRedis(),
        source if source is not None else CountingSource(),
        policy=policy or build_policy(),
        **overrides,
    )
