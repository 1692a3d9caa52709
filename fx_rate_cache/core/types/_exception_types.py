"""트라이/캐치 블록에서 사용할 예외 타입 정의 모듈.

광범위한 Exception 사용을 지양하고, 의도한 예외만 명시적으로 처리하기 위해 사용합니다.
"""

import asyncio
from decimal import InvalidOperation
from enum import StrEnum
from typing import Any, Awaitable, Callable, Final, Union

import aiohttp
from forex_python.converter import RatesNotAvailableError
from redis.exceptions import RedisError

# Callables
SyncOrAsyncCallable = Union[Callable[..., Any], Callable[..., Awaitable[Any]]]


class ErrorDomain(StrEnum):
    """에러 도메인 분류"""

    UPSTREAM = "upstream"
    STORE = "store"
    CONTENTION = "contention"
    DESERIALIZATION = "deserialization"
    UNKNOWN = "unknown"


class ErrorCode(StrEnum):
    """에러 코드 분류"""

    UPSTREAM_FAILED = "upstream_failed"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    INVALID_RATE = "invalid_rate"
    STORE_FAILED = "store_failed"
    STORE_TIMEOUT = "store_timeout"
    STAMPEDE_TIMEOUT = "stampede_timeout"
    UNKNOWN_ERROR = "unknown_error"


# ----------------------------------------------------------------------------
# Exception Constants
# ----------------------------------------------------------------------------

# 1. 시간 초과 (asyncio.wait_for / 소켓 타임아웃)
TIMEOUT_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    asyncio.TimeoutError,
    TimeoutError,
)

# 2. Redis 계층 예외 (연결/응답/타임아웃 포함)
STORE_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    RedisError,
    ConnectionError,
    OSError,
)

# 3. 업스트림 통신 예외
UPSTREAM_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    RatesNotAvailableError,
    aiohttp.ClientError,
    ConnectionError,
    OSError,
)

# 4. 값 파싱/역직렬화 예외
PARSE_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (
    InvalidOperation,
    ValueError,
    TypeError,
    KeyError,
)
