from fx_rate_cache.common.exceptions.errors import (
    RateCacheError,
    StampedeTimeoutError,
    StoreUnavailableError,
    UpstreamUnavailableError,
)
from fx_rate_cache.core.cache.rate_cache import RateCache
from fx_rate_cache.core.dto.internal.cache import CurrencyPair, StampedePolicy, build_cache_key
from fx_rate_cache.core.types import DEFAULT_KEY_PREFIX, RateSource

__all__ = [
    "DEFAULT_KEY_PREFIX",
    "CurrencyPair",
    "RateCache",
    "RateCacheError",
    "RateSource",
    "StampedePolicy",
    "StampedeTimeoutError",
    "StoreUnavailableError",
    "UpstreamUnavailableError",
    "build_cache_key",
]
