"""업스트림 환율 소스 구현

모두 `fetch(source, target) -> Decimal` 한 가지 capability만 제공합니다.
재시도는 하지 않습니다. (재시도/백오프는 호출자 몫)
"""

from __future__ import annotations

from decimal import Decimal

import aiohttp
import orjson
from forex_python.converter import CurrencyRates

from fx_rate_cache.common.logger import PipelineLogger
from fx_rate_cache.common.serde import to_decimal

logger = PipelineLogger.get_logger("rate_sources", "fx")


class FixedRateSource:
    """항상 같은 값을 돌려주는 소스 (테스트/로컬 개발용)."""

    def __init__(self, rate: Decimal | str | int) -> None:
        self.rate = to_decimal(rate)

    def fetch(self, source: str, target: str) -> Decimal:
        return self.rate


class ForexPythonRateSource:
    """forex-python 기반 소스 (동기 HTTP, 엔진이 워커 스레드에서 실행)."""

    def __init__(self) -> None:
        self._currency_rates = CurrencyRates(force_decimal=True)

    def fetch(self, source: str, target: str) -> Decimal:
        return to_decimal(self._currency_rates.get_rate(source, target))


class CurrConvRateSource:
    """free.currconv.com `convert` API 클라이언트 (aiohttp).

    GET {base_url}/convert?q=USD_EUR&compact=ultra&apiKey=... -> {"USD_EUR": 0.85}
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://free.currconv.com/api/v7",
        timeout: float = 10.0,
    ) -> None:
        if not api_key:
            raise ValueError("currconv api_key is required")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> CurrConvRateSource:
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """HTTP 세션을 생성하거나 재사용합니다."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=30),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch(self, source: str, target: str) -> Decimal:
        session = await self._ensure_session()
        query = f"{source}_{target}"
        url = f"{self.base_url.rstrip('/')}/convert"
        params = {"q": query, "compact": "ultra", "apiKey": self.api_key}

        async with session.get(url, params=params) as resp:
            logger.debug("currconv 응답", pair=query, status=resp.status)
            resp.raise_for_status()
            body = orjson.loads(await resp.read())

        return parse_currconv_response(body, query)


def parse_currconv_response(body: object, query: str) -> Decimal:
    """compact 응답에서 요청한 통화쌍 값을 꺼낸다. 없으면 KeyError."""
    if not isinstance(body, dict):
        raise ValueError(f"unexpected currconv response: {body!r}")
    if "error" in body:
        raise ValueError(f"currconv error: {body['error']}")
    return to_decimal(body[query])
