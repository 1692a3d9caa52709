from __future__ import annotations

import redis.asyncio as redis
from redis.asyncio import ConnectionPool, Redis

from fx_rate_cache.common.logger import PipelineLogger
from fx_rate_cache.config.settings import RedisSettings, redis_settings

logger = PipelineLogger.get_logger("redis", "cache_client")


class RedisConnectionManager:
    """Redis connection manager (pooled, async).

    Use initialize() before accessing client.
    """

    def __init__(self, settings: RedisSettings | None = None) -> None:
        self._settings = settings or redis_settings
        self._pool: ConnectionPool | None = None
        self._redis: Redis | None = None

    async def initialize(self, redis_url: str | None = None) -> None:
        if self._redis is not None:
            return

        url = redis_url or self._settings.url
        logger.info(
            "Redis 연결 시도",
            host=self._settings.host,
            port=self._settings.port,
            max_connections=self._settings.max_connections,
        )
        # 풀은 모든 호출 경로와 자동 갱신 태스크가 공유한다
        self._pool = ConnectionPool.from_url(
            url,
            max_connections=self._settings.max_connections,
            socket_timeout=self._settings.connection_timeout,
            socket_connect_timeout=self._settings.connection_timeout,
            health_check_interval=self._settings.health_check_interval,
        )
        self._redis = redis.Redis(connection_pool=self._pool)
        await self._redis.ping()
        logger.info("Redis 연결 성공")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
            logger.info("Redis 연결 종료")

    @property
    def client(self) -> Redis:
        if self._redis is None:
            raise RuntimeError("RedisConnectionManager is not initialized")
        return self._redis
