from decimal import Decimal
from typing import AsyncIterator

from fx_rate_cache.config.settings import RateCacheSettings, RateSourceSettings, RedisSettings
from fx_rate_cache.core.cache.rate_cache import RateCache
from fx_rate_cache.core.dto.internal.cache import StampedePolicy
from fx_rate_cache.core.types import RateSource
from fx_rate_cache.infra.cache.cache_client import RedisConnectionManager
from fx_rate_cache.infra.fx.rate_sources import (
    CurrConvRateSource,
    FixedRateSource,
    ForexPythonRateSource,
)


def build_rate_source(settings: RateSourceSettings) -> RateSource:
    """설정(kind)에 맞는 업스트림 소스 생성"""
    if settings.kind == "fixed":
        return FixedRateSource(Decimal(settings.fixed_rate))
    if settings.kind == "currconv":
        return CurrConvRateSource(
            api_key=settings.currconv_api_key or "",
            base_url=settings.currconv_base_url,
        )
    return ForexPythonRateSource()


def build_rate_cache(redis, rate_source: RateSource, settings: RateCacheSettings) -> RateCache:
    """settings 값으로 엔진 생성"""
    policy = StampedePolicy(
        lock_ttl=settings.lock_ttl,
        poll_interval=settings.poll_interval,
        max_attempts=settings.max_attempts,
        fetch_timeout=settings.fetch_timeout,
        store_timeout=settings.store_timeout,
    )
    return RateCache(
        redis,
        rate_source,
        key_prefix=settings.key_prefix,
        auto_update=settings.auto_update,
        expiration_seconds=settings.expiration_seconds,
        policy=policy,
        refresh_lead_seconds=settings.refresh_lead_seconds,
    )


async def init_redis(settings: RedisSettings) -> AsyncIterator[RedisConnectionManager]:
    """Redis 커넥션 풀 초기화 및 정리"""
    manager = RedisConnectionManager(settings)
    await manager.initialize()
    yield manager
    await manager.close()


async def init_rate_source(settings: RateSourceSettings) -> AsyncIterator[RateSource]:
    """업스트림 소스 초기화 및 정리 (HTTP 세션 보유 소스는 종료 시 close)"""
    source = build_rate_source(settings)
    yield source
    if isinstance(source, CurrConvRateSource):
        await source.close()


async def init_rate_cache(
    redis_manager: RedisConnectionManager,
    rate_source: RateSource,
    settings: RateCacheSettings,
) -> AsyncIterator[RateCache]:
    """RateCache 초기화 및 정리 (자동 갱신 태스크 취소)"""
    cache = build_rate_cache(redis_manager.client, rate_source, settings)
    yield cache
    await cache.close()
