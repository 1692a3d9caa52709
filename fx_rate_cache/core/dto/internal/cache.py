from __future__ import annotations

from dataclasses import dataclass

from fx_rate_cache.core.types import DEFAULT_KEY_PREFIX, LOCK_KEY_SUFFIX

KEY_SEPARATORS = ("/", ":")


@dataclass(slots=True, frozen=True, match_args=False)
class CurrencyPair:
    """캐시 식별 단위인 (source, target) 통화쌍.

    - 대소문자를 포함해 입력 그대로 식별합니다. (정규화 없음)
    - (USD, EUR)와 (EUR, USD)는 서로 다른 항목입니다.
    - 키 구분자(`/`, `:`)는 허용하지 않습니다. (키 충돌 방지)
    """

    source: str
    target: str

    def __post_init__(self) -> None:
        if not self.source or not self.target:
            raise ValueError(
                f"currency codes must be non-empty: source={self.source!r}, target={self.target!r}"
            )
        for code in (self.source, self.target):
            if any(sep in code for sep in KEY_SEPARATORS):
                raise ValueError(f"currency code must not contain {KEY_SEPARATORS}: {code!r}")

    def __str__(self) -> str:
        return f"{self.source}/{self.target}"


def build_cache_key(prefix: str, source: str, target: str) -> str:
    """`<prefix>/<source>/<target>` 형태의 캐시 키를 만든다."""
    return f"{prefix}/{source}/{target}"


@dataclass(slots=True, frozen=True, repr=False, match_args=False, kw_only=True)
class RateKeyBuilder:
    """엔진 인스턴스 접두사에 대한 Redis 키를 생성합니다."""

    prefix: str = DEFAULT_KEY_PREFIX

    def data(self, pair: CurrencyPair) -> str:
        return build_cache_key(self.prefix, pair.source, pair.target)

    def lock(self, pair: CurrencyPair) -> str:
        return f"{self.data(pair)}{LOCK_KEY_SUFFIX}"


@dataclass(slots=True, frozen=True, kw_only=True)
class StampedePolicy:
    """동시 fetch 조정 및 타임아웃 정책.

    총 대기 상한은 `poll_interval * max_attempts` 입니다.
    """

    lock_ttl: int = 15
    poll_interval: float = 0.1
    max_attempts: int = 100
    fetch_timeout: float = 10.0
    store_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.lock_ttl < 1:
            raise ValueError(f"lock_ttl must be >= 1: {self.lock_ttl}")
        if self.poll_interval <= 0 or self.fetch_timeout <= 0 or self.store_timeout <= 0:
            raise ValueError("poll_interval, fetch_timeout and store_timeout must be positive")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1: {self.max_attempts}")
        # 마커는 보유자의 fetch + 저장이 끝날 때까지 살아 있어야 한다
        if self.lock_ttl < self.fetch_timeout + self.store_timeout:
            raise ValueError(
                f"lock_ttl ({self.lock_ttl}s) must cover fetch_timeout + store_timeout "
                f"({self.fetch_timeout + self.store_timeout}s)"
            )

    @property
    def max_wait(self) -> float:
        return self.poll_interval * self.max_attempts
