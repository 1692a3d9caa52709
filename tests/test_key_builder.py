from __future__ import annotations

import pytest

from fx_rate_cache.core.dto.internal.cache import (
    CurrencyPair,
    RateKeyBuilder,
    StampedePolicy,
    build_cache_key,
)
from fx_rate_cache.core.types import DEFAULT_KEY_PREFIX


def test_build_cache_key_layout() -> None:
    assert build_cache_key("currency/rates", "USD", "EUR") == "currency/rates/USD/EUR"


def test_cache_key_is_directional_and_case_preserving() -> None:
    keys = {
        build_cache_key("p", "USD", "EUR"),
        build_cache_key("p", "EUR", "USD"),
        build_cache_key("p", "usd", "EUR"),
        build_cache_key("q", "USD", "EUR"),
    }
    assert len(keys) == 4


def test_key_builder_default_prefix_and_lock_key() -> None:
    keys = RateKeyBuilder()
    pair = CurrencyPair("USD", "KRW")

    assert keys.prefix == DEFAULT_KEY_PREFIX
    assert keys.data(pair) == f"{DEFAULT_KEY_PREFIX}/USD/KRW"
    assert keys.lock(pair) == f"{DEFAULT_KEY_PREFIX}/USD/KRW:lock"


@pytest.mark.parametrize("source,target", [("", "EUR"), ("USD", "")])
def test_currency_pair_rejects_empty_codes(source: str, target: str) -> None:
    with pytest.raises(ValueError):
        CurrencyPair(source, target)


def test_currency_pair_str_and_hash() -> None:
    pair = CurrencyPair("USD", "EUR")
    assert str(pair) == "USD/EUR"
    assert pair == CurrencyPair("USD", "EUR")
    assert pair != CurrencyPair("EUR", "USD")
    assert len({pair, CurrencyPair("USD", "EUR")}) == 1


def test_stampede_policy_defaults_and_validation() -> None:
    policy = StampedePolicy()
    assert policy.max_wait == pytest.approx(10.0)

    with pytest.raises(ValueError):
        StampedePolicy(lock_ttl=0)
    with pytest.raises(ValueError):
        StampedePolicy(poll_interval=0)
    with pytest.raises(ValueError):
        StampedePolicy(max_attempts=0)


@pytest.mark.parametrize(
    "source,target", [("A/B", "C"), ("A", "B/C"), ("USD", "EUR:lock"), ("US:D", "EUR")]
)
def test_currency_pair_rejects_key_separators(source: str, target: str) -> None:
    # ("A/B","C")와 ("A","B/C")가 같은 키로 합쳐지지 않도록 한다
    with pytest.raises(ValueError):
        CurrencyPair(source, target)


def test_stampede_policy_marker_must_cover_fetch_and_store() -> None:
    with pytest.raises(ValueError):
        StampedePolicy(lock_ttl=1, fetch_timeout=3.0, store_timeout=1.0)
    with pytest.raises(ValueError):
        StampedePolicy(lock_ttl=14, fetch_timeout=10.0, store_timeout=5.0)

    policy = StampedePolicy(lock_ttl=4, fetch_timeout=3.0, store_timeout=1.0)
    assert policy.lock_ttl == 4
