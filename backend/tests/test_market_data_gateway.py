"""Tests for the market data gateway."""

import asyncio
import logging
import math
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from app.services.config import RadarSettings
from app.services.market_data_gateway import (
    DEFAULT_BTC_DOMINANCE,
    MarketDataError,
    MarketDataGateway,
    RawTicker,
    REQUEST_TIMEOUT,
    SOURCE_DOMINANCE,
    SOURCE_FEAR_GREED,
    SOURCE_TICKER,
)


TICKERS_PAYLOAD = [
    {"symbol": "BTCUSDT", "lastPrice": "67000", "priceChangePercent": "1.0", "quoteVolume": "5"},
    {"symbol": "BTCEUR", "lastPrice": "62450", "priceChangePercent": "2.5", "quoteVolume": "1000000"},
    {"symbol": "ETHEUR", "lastPrice": "3100.5", "priceChangePercent": "-3.2", "quoteVolume": "250000"},
    {"symbol": "EURUSDT", "lastPrice": "1.08", "priceChangePercent": "0.1", "quoteVolume": "9"},
    {"symbol": "SOLEUR", "lastPrice": "140", "priceChangePercent": "45", "quoteVolume": "80000"},
]
FEAR_GREED_PAYLOAD = {"data": [{"value": "72", "value_classification": "Greed", "timestamp": "1700000000"}]}
GLOBAL_PAYLOAD = {"data": {"market_cap_percentage": {"btc": 54.3, "eth": 17.1}}}


def fake_get_json(responses):
    """Build a _get_json replacement answering per source."""

    async def _get_json(session, source, url, params=None):
        response = responses[source]
        if isinstance(response, Exception):
            raise response
        return response

    return _get_json


def gateway_with(responses, **settings):
    gateway = MarketDataGateway(RadarSettings(**settings))
    gateway._get_json = AsyncMock(side_effect=fake_get_json(responses))
    return gateway


class TestRawTicker:
    """Tests for ticker parsing."""

    def test_parses_string_numbers(self):
        ticker = RawTicker.from_payload(TICKERS_PAYLOAD[1])
        assert ticker.symbol == "BTCEUR"
        assert ticker.last_price == 62450.0
        assert ticker.change_percent == 2.5
        assert ticker.quote_volume == 1000000.0

    def test_missing_numbers_become_nan(self):
        ticker = RawTicker.from_payload({"symbol": "ADAEUR", "lastPrice": "abc"})
        assert math.isnan(ticker.last_price)
        assert math.isnan(ticker.change_percent)
        assert math.isnan(ticker.quote_volume)

    def test_missing_symbol_rejected(self):
        with pytest.raises(ValueError):
            RawTicker.from_payload({"lastPrice": "1"})


class TestSelectPairs:
    """Tests for quote-currency filtering and the top-N slice."""

    def test_filters_by_suffix_preserving_order(self):
        pairs = MarketDataGateway().select_pairs(TICKERS_PAYLOAD)
        assert [p.symbol for p in pairs] == ["BTCEUR", "ETHEUR", "SOLEUR"]

    def test_top_n_slice(self):
        pairs = MarketDataGateway(RadarSettings(top_n_pairs=2)).select_pairs(TICKERS_PAYLOAD)
        assert [p.symbol for p in pairs] == ["BTCEUR", "ETHEUR"]

    def test_default_limit_is_twenty(self):
        payload = [
            {"symbol": f"C{i}EUR", "lastPrice": "1", "priceChangePercent": "0", "quoteVolume": "1"}
            for i in range(30)
        ]
        pairs = MarketDataGateway().select_pairs(payload)
        assert len(pairs) == 20
        assert pairs[0].symbol == "C0EUR"
        assert pairs[-1].symbol == "C19EUR"

    def test_other_quote_currency(self):
        pairs = MarketDataGateway(RadarSettings(quote_currency="USDT")).select_pairs(TICKERS_PAYLOAD)
        assert [p.symbol for p in pairs] == ["BTCUSDT", "EURUSDT"]

    def test_malformed_records_skipped(self, caplog):
        payload = ["garbage", {"no_symbol": True}, {"symbol": ""}, TICKERS_PAYLOAD[1]]

        with caplog.at_level(logging.WARNING, logger="app.services.market_data_gateway"):
            pairs = MarketDataGateway().select_pairs(payload)

        assert [p.symbol for p in pairs] == ["BTCEUR"]
        skipped = [r for r in caplog.records if "Skipping malformed ticker" in r.getMessage()]
        assert len(skipped) == 3

    def test_malformed_records_do_not_count_toward_limit(self):
        payload = ["garbage", TICKERS_PAYLOAD[1], None, TICKERS_PAYLOAD[2]]
        pairs = MarketDataGateway(RadarSettings(top_n_pairs=2)).select_pairs(payload)
        assert [p.symbol for p in pairs] == ["BTCEUR", "ETHEUR"]

    def test_lowercase_symbol_matches_suffix(self):
        payload = [{"symbol": "btceur", "lastPrice": "1", "priceChangePercent": "0", "quoteVolume": "1"}]
        pairs = MarketDataGateway().select_pairs(payload)
        assert [p.symbol for p in pairs] == ["BTCEUR"]

    def test_non_list_payload_is_source_failure(self):
        with pytest.raises(MarketDataError) as exc:
            MarketDataGateway().select_pairs({"code": -1})
        assert exc.value.source == SOURCE_TICKER


@pytest.mark.asyncio
class TestFetchMarketSnapshot:
    """Tests for the joint fetch and per-source failure policy."""

    async def test_all_sources_ok(self):
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: FEAR_GREED_PAYLOAD,
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        })

        snapshot = await gateway.fetch_market_snapshot()

        assert [p.symbol for p in snapshot.pairs] == ["BTCEUR", "ETHEUR", "SOLEUR"]
        assert snapshot.fear_greed == 72
        assert snapshot.btc_dominance == 54.3
        assert snapshot.dominance_defaulted is False
        assert gateway._get_json.await_count == 3

    async def test_dominance_failure_uses_default(self):
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: FEAR_GREED_PAYLOAD,
            SOURCE_DOMINANCE: MarketDataError(SOURCE_DOMINANCE, "429"),
        })

        snapshot = await gateway.fetch_market_snapshot()

        assert snapshot.btc_dominance == DEFAULT_BTC_DOMINANCE == 50.0
        assert snapshot.dominance_defaulted is True
        assert snapshot.fear_greed == 72

    async def test_dominance_bad_payload_uses_default(self):
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: FEAR_GREED_PAYLOAD,
            SOURCE_DOMINANCE: {"data": {}},
        })

        snapshot = await gateway.fetch_market_snapshot()
        assert snapshot.btc_dominance == 50.0

    async def test_ticker_failure_aborts(self):
        gateway = gateway_with({
            SOURCE_TICKER: MarketDataError(SOURCE_TICKER, "503"),
            SOURCE_FEAR_GREED: FEAR_GREED_PAYLOAD,
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        })

        with pytest.raises(MarketDataError) as exc:
            await gateway.fetch_market_snapshot()
        assert exc.value.source == SOURCE_TICKER

    async def test_fear_greed_failure_aborts(self):
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: MarketDataError(SOURCE_FEAR_GREED, "timeout"),
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        })

        with pytest.raises(MarketDataError) as exc:
            await gateway.fetch_market_snapshot()
        assert exc.value.source == SOURCE_FEAR_GREED

    async def test_fear_greed_bad_payload_aborts(self):
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: {"data": []},
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        })

        with pytest.raises(MarketDataError) as exc:
            await gateway.fetch_market_snapshot()
        assert exc.value.source == SOURCE_FEAR_GREED

    async def test_fear_greed_decimal_string_accepted(self):
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: {"data": [{"value": "45.0"}]},
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        })

        snapshot = await gateway.fetch_market_snapshot()
        assert snapshot.fear_greed == 45

    @pytest.mark.parametrize("value", ["101", "-1", "nan", "inf"])
    async def test_fear_greed_out_of_range_aborts(self, value):
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: {"data": [{"value": value}]},
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        })

        with pytest.raises(MarketDataError) as exc:
            await gateway.fetch_market_snapshot()
        assert exc.value.source == SOURCE_FEAR_GREED

    async def test_fear_greed_bounds_inclusive(self):
        for value in ("0", "100"):
            gateway = gateway_with({
                SOURCE_TICKER: TICKERS_PAYLOAD,
                SOURCE_FEAR_GREED: {"data": [{"value": value}]},
                SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
            })
            snapshot = await gateway.fetch_market_snapshot()
            assert snapshot.fear_greed == int(value)

    async def test_sources_fetched_concurrently(self):
        responses = {
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: FEAR_GREED_PAYLOAD,
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        }
        all_started = asyncio.Event()
        started = []

        async def _get_json(session, source, url, params=None):
            started.append(source)
            if len(started) == 3:
                all_started.set()
            # Blocks until all three requests are in flight
            await asyncio.wait_for(all_started.wait(), timeout=1.0)
            return responses[source]

        gateway = MarketDataGateway()
        gateway._get_json = _get_json

        snapshot = await gateway.fetch_market_snapshot()

        assert sorted(started) == sorted(responses)
        assert snapshot.fear_greed == 72
        assert snapshot.dominance_defaulted is False

    async def test_session_has_no_timeout(self, monkeypatch):
        session_cls = MagicMock()
        session_cls.return_value.__aenter__ = AsyncMock(return_value=MagicMock())
        session_cls.return_value.__aexit__ = AsyncMock(return_value=False)
        monkeypatch.setattr(aiohttp, "ClientSession", session_cls)
        gateway = gateway_with({
            SOURCE_TICKER: TICKERS_PAYLOAD,
            SOURCE_FEAR_GREED: FEAR_GREED_PAYLOAD,
            SOURCE_DOMINANCE: GLOBAL_PAYLOAD,
        })

        await gateway.fetch_market_snapshot()

        timeout = session_cls.call_args.kwargs["timeout"]
        assert timeout is REQUEST_TIMEOUT
        assert timeout.total is None


@pytest.mark.asyncio
async def test_get_json_wraps_transport_errors():
    """Transport errors surface as MarketDataError for the source."""
    session = MagicMock()
    session.get.side_effect = OSError("connection refused")

    with pytest.raises(MarketDataError) as exc:
        await MarketDataGateway()._get_json(session, SOURCE_TICKER, "https://example.invalid")
    assert exc.value.source == SOURCE_TICKER
    assert "connection refused" in str(exc.value)


@pytest.mark.asyncio
async def test_get_json_non_200_is_failure():
    """A non-200 status is a source failure."""
    response = MagicMock()
    response.status = 503
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get.return_value = context

    with pytest.raises(MarketDataError, match="returned 503"):
        await MarketDataGateway()._get_json(session, SOURCE_FEAR_GREED, "https://example.invalid")


@pytest.mark.asyncio
async def test_get_json_returns_body():
    response = MagicMock()
    response.status = 200
    response.json = AsyncMock(return_value=FEAR_GREED_PAYLOAD)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get.return_value = context

    payload = await MarketDataGateway()._get_json(session, SOURCE_FEAR_GREED, "https://example.invalid")
    assert payload == FEAR_GREED_PAYLOAD
