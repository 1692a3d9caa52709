from __future__ import annotations

from decimal import Decimal

import pytest
from aiohttp import ClientResponseError, test_utils, web

from fx_rate_cache.core.types import RateSource
from fx_rate_cache.infra.fx import rate_sources
from fx_rate_cache.infra.fx.rate_sources import (
    CurrConvRateSource,
    FixedRateSource,
    ForexPythonRateSource,
    parse_currconv_response,
)


class _StubCurrencyRates:
    def __init__(self, force_decimal: bool = False) -> None:
        self.force_decimal = force_decimal
        self.calls: list[tuple[str, str]] = []

    def get_rate(self, base_cur: str, dest_cur: str) -> Decimal:
        self.calls.append((base_cur, dest_cur))
        return Decimal("0.8512")


def test_fixed_source_returns_configured_rate() -> None:
    source = FixedRateSource("0.00")
    assert str(source.fetch("USD", "EUR")) == "0.00"
    assert isinstance(source, RateSource)


def test_forex_python_source_delegates_with_decimals(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(rate_sources, "CurrencyRates", _StubCurrencyRates)

    source = ForexPythonRateSource()

    assert source.fetch("USD", "EUR") == Decimal("0.8512")
    assert source._currency_rates.force_decimal is True
    assert source._currency_rates.calls == [("USD", "EUR")]


def test_parse_currconv_response() -> None:
    assert parse_currconv_response({"USD_EUR": 0.85}, "USD_EUR") == Decimal("0.85")

    with pytest.raises(KeyError):
        parse_currconv_response({"USD_JPY": 150}, "USD_EUR")
    with pytest.raises(ValueError):
        parse_currconv_response({"status": 400, "error": "Invalid API key"}, "USD_EUR")
    with pytest.raises(ValueError):
        parse_currconv_response([0.85], "USD_EUR")


def test_currconv_requires_api_key() -> None:
    with pytest.raises(ValueError):
        CurrConvRateSource(api_key="")


def _currconv_app(status: int = 200) -> web.Application:
    async def convert(request: web.Request) -> web.Response:
        if status != 200:
            return web.json_response({"error": "quota"}, status=status)
        assert request.query["compact"] == "ultra"
        assert request.query["apiKey"] == "secret"
        return web.json_response({request.query["q"]: 1329.5})

    app = web.Application()
    app.router.add_get("/api/v7/convert", convert)
    return app


@pytest.mark.asyncio
async def test_currconv_fetch_over_http() -> None:
    async with test_utils.TestServer(_currconv_app()) as server:
        base_url = str(server.make_url("/api/v7"))
        async with CurrConvRateSource(api_key="secret", base_url=base_url) as source:
            rate = await source.fetch("USD", "KRW")

    assert rate == Decimal("1329.5")


@pytest.mark.asyncio
async def test_currconv_http_error_propagates() -> None:
    async with test_utils.TestServer(_currconv_app(status=429)) as server:
        base_url = str(server.make_url("/api/v7"))
        async with CurrConvRateSource(api_key="secret", base_url=base_url) as source:
            with pytest.raises(ClientResponseError):
                await source.fetch("USD", "KRW")
