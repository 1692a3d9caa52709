from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal, TypeAlias

from redis.exceptions import (
    AuthenticationError as RedisAuthenticationError,
)
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
)
from redis.exceptions import (
    RedisError,
)
from redis.exceptions import (
    TimeoutError as RedisTimeoutError,
)

from fx_rate_cache.core.types import (
    PARSE_EXCEPTIONS,
    STORE_EXCEPTIONS,
    TIMEOUT_EXCEPTIONS,
    UPSTREAM_EXCEPTIONS,
    ErrorCode,
    ErrorDomain,
)

RuleKind: TypeAlias = Literal["upstream", "store"]
ErrorCategory: TypeAlias = tuple[ErrorDomain, ErrorCode, bool]


@dataclass(frozen=True, slots=True)
class Rule:
    """예외 분류 규칙

    kinds:  규칙이 적용될 경계 종류 ("upstream", "store")
    exc:    매칭할 예외 타입(단일 타입 또는 타입 튜플)
    result: (ErrorDomain, ErrorCode, retryable)
    """

    kinds: tuple[RuleKind, ...]
    exc: type[BaseException] | tuple[type[BaseException], ...]
    result: ErrorCategory


# 1) 타임아웃 규칙 (경계별로 코드만 다름)
RULES_TIMEOUT: list[Rule] = [
    Rule(
        kinds=("store",),
        exc=(RedisTimeoutError, *TIMEOUT_EXCEPTIONS),
        result=(ErrorDomain.STORE, ErrorCode.STORE_TIMEOUT, True),
    ),
    Rule(
        kinds=("upstream",),
        exc=TIMEOUT_EXCEPTIONS,
        result=(ErrorDomain.UPSTREAM, ErrorCode.UPSTREAM_TIMEOUT, True),
    ),
]

# 2) Redis 규칙 (구체 -> 포괄)
RULES_REDIS: list[Rule] = [
    Rule(
        kinds=("store",),
        exc=RedisAuthenticationError,
        result=(ErrorDomain.STORE, ErrorCode.STORE_FAILED, False),
    ),
    Rule(
        kinds=("store",),
        exc=(RedisConnectionError, RedisError),
        result=(ErrorDomain.STORE, ErrorCode.STORE_FAILED, True),
    ),
    Rule(
        kinds=("store",),
        exc=PARSE_EXCEPTIONS,
        result=(ErrorDomain.DESERIALIZATION, ErrorCode.STORE_FAILED, False),
    ),
    Rule(
        kinds=("store",),
        exc=STORE_EXCEPTIONS,
        result=(ErrorDomain.STORE, ErrorCode.STORE_FAILED, True),
    ),
]

# 3) 업스트림 규칙
RULES_UPSTREAM: list[Rule] = [
    Rule(
        kinds=("upstream",),
        exc=PARSE_EXCEPTIONS,
        result=(ErrorDomain.UPSTREAM, ErrorCode.INVALID_RATE, False),
    ),
    Rule(
        kinds=("upstream",),
        exc=UPSTREAM_EXCEPTIONS,
        result=(ErrorDomain.UPSTREAM, ErrorCode.UPSTREAM_FAILED, True),
    ),
]

# 주의: 매칭 우선순위를 보장하기 위해 선언 순서를 유지합니다.
RULES_BY_KIND: dict[str, list[Rule]] = {
    "store": [*RULES_TIMEOUT, *RULES_REDIS],
    "upstream": [*RULES_TIMEOUT, *RULES_UPSTREAM],
}

# 규칙에 매칭되지 않을 때의 경계별 기본값
DEFAULT_BY_KIND: dict[str, ErrorCategory] = {
    "store": (ErrorDomain.STORE, ErrorCode.STORE_FAILED, True),
    "upstream": (ErrorDomain.UPSTREAM, ErrorCode.UPSTREAM_FAILED, True),
}


def classify_exception(err: BaseException, kind: str) -> ErrorCategory:
    """예외 → (ErrorDomain, ErrorCode, retryable) 분류기 (규칙 테이블 기반)

    규칙은 "구체 → 포괄" 순서로 선언되어 가장 특수한 규칙이 먼저 매칭됩니다.
    """
    for rule in RULES_BY_KIND.get(kind, []):
        if kind in rule.kinds and isinstance(err, rule.exc):
            return rule.result

    return DEFAULT_BY_KIND.get(kind, (ErrorDomain.UNKNOWN, ErrorCode.UNKNOWN_ERROR, False))


class ErrorSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class ErrorStrategy:
    """에러 코드별 처리 전략 (로그 레벨/심각도)"""

    severity: ErrorSeverity
    log_level: Literal["debug", "info", "warning", "error", "critical"]


ERROR_STRATEGIES: dict[ErrorCode, ErrorStrategy] = {
    ErrorCode.UPSTREAM_FAILED: ErrorStrategy(ErrorSeverity.MEDIUM, "warning"),
    ErrorCode.UPSTREAM_TIMEOUT: ErrorStrategy(ErrorSeverity.MEDIUM, "warning"),
    ErrorCode.INVALID_RATE: ErrorStrategy(ErrorSeverity.HIGH, "error"),
    ErrorCode.STORE_FAILED: ErrorStrategy(ErrorSeverity.HIGH, "error"),
    ErrorCode.STORE_TIMEOUT: ErrorStrategy(ErrorSeverity.HIGH, "error"),
    ErrorCode.STAMPEDE_TIMEOUT: ErrorStrategy(ErrorSeverity.LOW, "info"),
}

_DEFAULT_STRATEGY = ErrorStrategy(ErrorSeverity.HIGH, "error")


def get_error_strategy(code: ErrorCode) -> ErrorStrategy:
    return ERROR_STRATEGIES.get(code, _DEFAULT_STRATEGY)
