from __future__ import annotations

from decimal import Decimal

import pytest

from fx_rate_cache.common.exceptions.errors import StoreUnavailableError
from fx_rate_cache.core.dto.internal.cache import CurrencyPair, RateKeyBuilder
from fx_rate_cache.core.dto.io.cache import FetchLockMarker
from fx_rate_cache.core.types import ErrorCode
from fx_rate_cache.infra.cache.rate_store import RateStore
from tests.factory_builders import FailingRedis, FakeRedis, HangingRedis

PAIR = CurrencyPair("USD", "EUR")


def _store(redis: FakeRedis, timeout: float = 1.0) -> RateStore:
    return RateStore(redis, RateKeyBuilder(prefix="test/rates"), timeout=timeout)


@pytest.mark.asyncio
async def test_set_rate_writes_text_with_ttl() -> None:
    fake = FakeRedis()
    store = _store(fake)

    await store.set_rate(PAIR, Decimal("0.8512"), ttl=60)

    assert await fake.get("test/rates/USD/EUR") == b"0.8512"
    assert fake.set_calls[-1][2] == 60
    assert await store.get_rate(PAIR) == Decimal("0.8512")
    assert await fake.ttl("test/rates/USD/EUR") == 60


@pytest.mark.asyncio
async def test_get_rate_missing_and_corrupted_are_misses() -> None:
    fake = FakeRedis()
    store = _store(fake)

    assert await store.get_rate(PAIR) is None

    fake.put("test/rates/USD/EUR", b"garbage")
    assert await store.get_rate(PAIR) is None


@pytest.mark.asyncio
async def test_delete_reports_whether_key_existed() -> None:
    fake = FakeRedis()
    store = _store(fake)

    assert await store.delete(PAIR) is False
    await store.set_rate(PAIR, Decimal("1"), ttl=10)
    assert await store.delete(PAIR) is True
    assert await store.get_rate(PAIR) is None


@pytest.mark.asyncio
async def test_lock_is_exclusive_and_released_only_by_owner() -> None:
    fake = FakeRedis()
    store = _store(fake)
    mine = FetchLockMarker(owner="mine", acquired_at=0.0)
    other = FetchLockMarker(owner="other", acquired_at=0.0)

    assert await store.acquire_lock(PAIR, mine, ttl=5) is True
    assert await store.acquire_lock(PAIR, other, ttl=5) is False
    assert (await store.lock_holder(PAIR)) == mine

    # 다른 소유자는 해제할 수 없다
    assert await store.release_lock(PAIR, other) is False
    assert await store.lock_holder(PAIR) == mine

    assert await store.release_lock(PAIR, mine) is True
    assert await store.lock_holder(PAIR) is None
    assert await store.acquire_lock(PAIR, other, ttl=5) is True


@pytest.mark.asyncio
async def test_lock_key_is_separate_from_value_key() -> None:
    fake = FakeRedis()
    store = _store(fake)

    await store.acquire_lock(PAIR, FetchLockMarker(owner="x", acquired_at=0.0), ttl=5)
    await store.set_rate(PAIR, Decimal("2"), ttl=60)

    assert fake.keys() == ["test/rates/USD/EUR", "test/rates/USD/EUR:lock"]
    assert fake.set_calls[0][2:] == (5, True)


@pytest.mark.asyncio
async def test_redis_errors_are_standardized() -> None:
    store = _store(FailingRedis())

    with pytest.raises(StoreUnavailableError) as exc_info:
        await store.get_rate(PAIR)

    err = exc_info.value
    assert err.error_code == ErrorCode.STORE_FAILED
    assert err.retryable is True
    assert err.pair == "USD/EUR"
    assert err.to_dict()["original_error_type"] == "ConnectionError"


@pytest.mark.asyncio
async def test_redis_timeout_is_standardized() -> None:
    store = _store(HangingRedis(), timeout=0.05)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await store.get_rate(PAIR)

    assert exc_info.value.error_code == ErrorCode.STORE_TIMEOUT
