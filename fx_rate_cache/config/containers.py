"""
Dependency Injection Container

아키텍처:
- Settings: settings.py 싱글톤을 Object로 주입
- Resource: Redis 풀 / 업스트림 소스 / RateCache의 async init/shutdown 자동 관리

사용 예시:
    container = ApplicationContainer()
    cache = await container.rate_cache()
    ...
    await container.shutdown_resources()
"""

from dependency_injector import containers, providers

from fx_rate_cache.common.exceptions.error_dispatcher import ErrorDispatcher
from fx_rate_cache.config.init_infra import init_rate_cache, init_rate_source, init_redis
from fx_rate_cache.config.settings import (
    rate_cache_settings,
    rate_source_settings,
    redis_settings,
)


class ApplicationContainer(containers.DeclarativeContainer):
    """최상위 컨테이너

    - redis_manager: 공유 커넥션 풀 (프로세스 단위)
    - rate_source: FX_SOURCE_KIND에 따른 업스트림 소스
    - rate_cache: 엔진 (종료 시 자동 갱신 태스크 취소)
    """

    # ===== Settings 주입 (DI) =====
    redis_config = providers.Object(redis_settings)
    cache_config = providers.Object(rate_cache_settings)
    source_config = providers.Object(rate_source_settings)

    redis_manager = providers.Resource(init_redis, settings=redis_config)
    rate_source = providers.Resource(init_rate_source, settings=source_config)
    rate_cache = providers.Resource(
        init_rate_cache,
        redis_manager=redis_manager,
        rate_source=rate_source,
        settings=cache_config,
    )

    error_dispatcher = providers.Singleton(ErrorDispatcher)
