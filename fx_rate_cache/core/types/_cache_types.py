from __future__ import annotations

from decimal import Decimal
from typing import Final, Protocol, runtime_checkable

DEFAULT_KEY_PREFIX: Final[str] = "currency/rates"
DEFAULT_EXPIRATION_SECONDS: Final[int] = 3600
LOCK_KEY_SUFFIX: Final[str] = ":lock"


@runtime_checkable
class RateSource(Protocol):
    """업스트림 환율 소스 (단일 메서드 capability).

    `fetch`는 동기 함수여도 되고 `async def`여도 됩니다.
    동기 구현은 엔진이 워커 스레드에서 실행합니다.
    """

    def fetch(self, source: str, target: str) -> Decimal: ...
