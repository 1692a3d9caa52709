from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fx_rate_cache.core.types import ErrorCode, ErrorDomain


@dataclass(eq=False)
class RateCacheError(Exception):
    """환율 캐시 기본 예외 클래스

    운영/관측 판단을 위한 구조화 필드를 포함하며, `to_dict()`는
    이벤트/로그 직렬화 시 일관된 스키마를 제공합니다.
    """

    message: str
    pair: str | None = None
    original_exception: BaseException | None = None

    error_domain: ErrorDomain = ErrorDomain.UNKNOWN
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.message} [{self.pair}]" if self.pair else self.message

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "pair": self.pair,
            "error": self.message,
            "error_type": self.__class__.__name__,
            "error_domain": self.error_domain.value,
            "error_code": self.error_code.value,
            "retryable": self.retryable,
        }

        if self.original_exception:
            result["original_error"] = str(self.original_exception)
            result["original_error_type"] = self.original_exception.__class__.__name__

        return result


@dataclass(eq=False)
class UpstreamUnavailableError(RateCacheError):
    """업스트림 환율 소스 실패/타임아웃/잘못된 값"""

    error_domain: ErrorDomain = ErrorDomain.UPSTREAM
    error_code: ErrorCode = ErrorCode.UPSTREAM_FAILED
    retryable: bool = True


@dataclass(eq=False)
class StoreUnavailableError(RateCacheError):
    """공유 저장소(Redis) 연결 불가/명령 실패/타임아웃"""

    error_domain: ErrorDomain = ErrorDomain.STORE
    error_code: ErrorCode = ErrorCode.STORE_FAILED
    retryable: bool = True


@dataclass(eq=False)
class StampedeTimeoutError(RateCacheError):
    """동시 진행 중인 fetch를 제한 시간 내에 해소하지 못함"""

    error_domain: ErrorDomain = ErrorDomain.CONTENTION
    error_code: ErrorCode = ErrorCode.STAMPEDE_TIMEOUT
    retryable: bool = True


__all__ = [
    "RateCacheError",
    "StampedeTimeoutError",
    "StoreUnavailableError",
    "UpstreamUnavailableError",
]
