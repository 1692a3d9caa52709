from ._cache_types import (
    DEFAULT_EXPIRATION_SECONDS,
    DEFAULT_KEY_PREFIX,
    LOCK_KEY_SUFFIX,
    RateSource,
)
from ._exception_types import (
    PARSE_EXCEPTIONS,
    STORE_EXCEPTIONS,
    TIMEOUT_EXCEPTIONS,
    UPSTREAM_EXCEPTIONS,
    ErrorCode,
    ErrorDomain,
    SyncOrAsyncCallable,
)

__all__ = [
    "DEFAULT_EXPIRATION_SECONDS",
    "DEFAULT_KEY_PREFIX",
    "LOCK_KEY_SUFFIX",
    "RateSource",
    "PARSE_EXCEPTIONS",
    "STORE_EXCEPTIONS",
    "TIMEOUT_EXCEPTIONS",
    "UPSTREAM_EXCEPTIONS",
    "ErrorCode",
    "ErrorDomain",
    "SyncOrAsyncCallable",
]
