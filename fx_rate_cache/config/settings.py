"""통합 Settings 모듈 - 환경변수 기반

설정 우선순위:
    1. 환경변수 (최우선) - export RATE_CACHE_EXPIRATION_SECONDS=60
    2. .env 파일 - fx_rate_cache/config/.env
    3. 코드 기본값 (settings.py 내부)

사용 예시:
    # 개발 환경 (기본값 사용)
    python main.py USD EUR

    # 프로덕션 (환경변수 오버라이드)
    export REDIS_HOST=prod-redis
    export RATE_CACHE_AUTO_UPDATE=true
    python main.py USD EUR --watch 60
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

config_dir = Path(__file__).parent


def env_settings(prefix: str) -> SettingsConfigDict:
    """환경변수 + .env 통합 설정

    Args:
        prefix: 환경변수 접두사 (예: REDIS_, RATE_CACHE_)
    """
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=config_dir / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class RedisSettings(BaseSettings):
    """Redis 설정 (환경변수 기반)

    환경변수 오버라이드:
        REDIS_HOST: Redis 호스트 (기본: localhost)
        REDIS_PORT: Redis 포트 (기본: 6379)
        REDIS_DB: Redis DB 번호 (기본: 0)
        REDIS_PASSWORD: Redis 비밀번호 (환경변수로만)
        REDIS_SSL: SSL 사용 여부 (기본: false)
        REDIS_CONNECTION_TIMEOUT: 소켓 타임아웃 (기본: 10초)
        REDIS_MAX_CONNECTIONS: 커넥션 풀 최대 크기 (기본: 128)
        REDIS_HEALTH_CHECK_INTERVAL: 유휴 커넥션 헬스체크 주기 (기본: 30초)
    """

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str | None = None
    ssl: bool = False
    connection_timeout: float = 10.0
    max_connections: int = 128
    health_check_interval: int = 30

    model_config = env_settings("REDIS_")

    @property
    def url(self) -> str:
        """Redis URL 생성 (redis:// 또는 rediss://)"""
        protocol = "rediss" if self.ssl else "redis"
        auth = f":{self.password}@" if self.password else ""
        return f"{protocol}://{auth}{self.host}:{self.port}/{self.db}"


class RateCacheSettings(BaseSettings):
    """환율 캐시 엔진 설정

    환경변수 오버라이드:
        RATE_CACHE_KEY_PREFIX: 캐시 키 접두사 (기본: currency/rates)
        RATE_CACHE_EXPIRATION_SECONDS: 환율 TTL 및 자동 갱신 주기 (기본: 3600초)
        RATE_CACHE_AUTO_UPDATE: 백그라운드 자동 갱신 여부 (기본: false)
        RATE_CACHE_FETCH_TIMEOUT: 업스트림 조회 타임아웃 (기본: 10초)
        RATE_CACHE_STORE_TIMEOUT: Redis 명령 타임아웃 (기본: 5초)
        RATE_CACHE_LOCK_TTL: fetch 마커 TTL (기본: 15초)
        RATE_CACHE_POLL_INTERVAL: 동시 fetch 대기 폴링 간격 (기본: 0.1초)
        RATE_CACHE_MAX_ATTEMPTS: 동시 fetch 대기 최대 폴링 횟수 (기본: 100회)
        RATE_CACHE_REFRESH_LEAD_SECONDS: 만료 전 선행 갱신 시간 (기본: 0초)
    """

    key_prefix: str = "currency/rates"
    expiration_seconds: int = Field(default=3600, ge=1)
    auto_update: bool = False
    fetch_timeout: float = Field(default=10.0, gt=0)
    store_timeout: float = Field(default=5.0, gt=0)
    lock_ttl: int = Field(default=15, ge=1)
    poll_interval: float = Field(default=0.1, gt=0)
    max_attempts: int = Field(default=100, ge=1)
    refresh_lead_seconds: float = Field(default=0.0, ge=0)

    model_config = env_settings("RATE_CACHE_")

    @model_validator(mode="after")
    def _lock_outlives_fetch(self) -> RateCacheSettings:
        if self.lock_ttl < self.fetch_timeout + self.store_timeout:
            raise ValueError("lock_ttl must be >= fetch_timeout + store_timeout")
        return self


class RateSourceSettings(BaseSettings):
    """업스트림 환율 소스 설정

    환경변수 오버라이드:
        FX_SOURCE_KIND: forex_python | currconv | fixed (기본: forex_python)
        FX_SOURCE_CURRCONV_API_KEY: free.currconv.com API 키
        FX_SOURCE_CURRCONV_BASE_URL: currconv API 주소
        FX_SOURCE_FIXED_RATE: fixed 소스가 반환할 값 (테스트/로컬용)
    """

    kind: Literal["forex_python", "currconv", "fixed"] = "forex_python"
    currconv_api_key: str | None = None
    currconv_base_url: str = "https://free.currconv.com/api/v7"
    fixed_rate: str = "1"

    model_config = env_settings("FX_SOURCE_")


class LoggingSettings(BaseSettings):
    """로깅 설정

    환경변수 오버라이드:
        LOG_LEVEL: 로그 레벨 (기본: INFO)
        LOG_DIR: 로그 디렉토리 (기본: logs)
        LOG_TO_FILE: 파일 로깅 여부 (기본: true)
    """

    level: str = "INFO"
    dir: str = "logs"
    to_file: bool = True

    model_config = env_settings("LOG_")


# ========================================
# 설정 인스턴스 (싱글톤)
# ========================================

redis_settings = RedisSettings()
rate_cache_settings = RateCacheSettings()
rate_source_settings = RateSourceSettings()
logging_settings = LoggingSettings()
