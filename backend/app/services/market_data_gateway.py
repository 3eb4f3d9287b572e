"""Market data gateway.

Fetches the three upstream inputs of a refresh cycle:
- 24h tickers for every listed pair (load-bearing)
- Fear & Greed Index (load-bearing)
- Global market data for BTC dominance (best-effort)

The three calls run concurrently. A failing best-effort source is replaced by
a named default; a failing load-bearing source raises MarketDataError.
Requests carry no client timeout.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from .config import RadarSettings

logger = logging.getLogger(__name__)

DEFAULT_BTC_DOMINANCE = 50.0
FEAR_GREED_MIN = 0
FEAR_GREED_MAX = 100

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=None)

SOURCE_TICKER = "ticker"
SOURCE_FEAR_GREED = "fear_greed"
SOURCE_DOMINANCE = "dominance"


class MarketDataError(Exception):
    """Raised when an upstream source cannot deliver usable data."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


@dataclass
class RawTicker:
    """A single 24h ticker as reported upstream."""
    symbol: str
    last_price: float
    change_percent: float
    quote_volume: float

    @classmethod
    def from_payload(cls, item: Dict[str, Any]) -> "RawTicker":
        """Parse an upstream ticker record.

        Numeric fields arrive as strings. Missing or unparseable numbers become
        NaN; a record without a symbol is rejected with ValueError.
        """
        if not isinstance(item, dict):
            raise ValueError(f"Ticker record must be an object, got {type(item).__name__}")
        symbol = item.get("symbol")
        if not isinstance(symbol, str) or not symbol:
            raise ValueError("Ticker record has no symbol")
        return cls(
            symbol=symbol.upper(),
            last_price=_to_float(item.get("lastPrice")),
            change_percent=_to_float(item.get("priceChangePercent")),
            quote_volume=_to_float(item.get("quoteVolume")),
        )


@dataclass
class MarketSnapshot:
    """Everything one refresh cycle needs from upstream."""
    pairs: List[RawTicker]
    fear_greed: int
    btc_dominance: float
    dominance_defaulted: bool = False


def _to_float(value: Any) -> float:
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


class MarketDataGateway:
    """Fetches and normalizes raw market data from public APIs."""

    def __init__(self, settings: Optional[RadarSettings] = None):
        self.settings = settings or RadarSettings()

    async def _get_json(
        self,
        session: aiohttp.ClientSession,
        source: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """GET a JSON document, converting any failure into MarketDataError."""
        try:
            async with session.get(url, params=params) as resp:
                if resp.status != 200:
                    raise MarketDataError(source, f"{url} returned {resp.status}")
                return await resp.json(content_type=None)
        except MarketDataError:
            raise
        except Exception as e:
            raise MarketDataError(source, f"request to {url} failed: {e}") from e

    def select_pairs(self, payload: Any) -> List[RawTicker]:
        """Filter raw tickers to the quote currency and keep the first top-N.

        Upstream order is preserved. Records that cannot be parsed are
        skipped with a warning.
        """
        if not isinstance(payload, list):
            raise MarketDataError(SOURCE_TICKER, f"expected a list, got {type(payload).__name__}")

        suffix = self.settings.quote_currency
        pairs: List[RawTicker] = []
        for item in payload:
            try:
                ticker = RawTicker.from_payload(item)
            except ValueError as e:
                logger.warning(f"Skipping malformed ticker record: {e}")
                continue
            if not ticker.symbol.endswith(suffix):
                continue
            pairs.append(ticker)
            if len(pairs) >= self.settings.top_n_pairs:
                break
        return pairs

    async def fetch_tickers(self, session: aiohttp.ClientSession) -> List[RawTicker]:
        """Fetch 24h tickers for all pairs and select the configured subset."""
        payload = await self._get_json(session, SOURCE_TICKER, self.settings.ticker_url)
        return self.select_pairs(payload)

    async def fetch_fear_greed(self, session: aiohttp.ClientSession) -> int:
        """Fetch the current Fear & Greed Index value."""
        payload = await self._get_json(session, SOURCE_FEAR_GREED, self.settings.fear_greed_url)
        try:
            value = int(float(payload["data"][0]["value"]))
        except (KeyError, IndexError, TypeError, ValueError, OverflowError) as e:
            raise MarketDataError(SOURCE_FEAR_GREED, f"unexpected payload: {e}") from e
        if not FEAR_GREED_MIN <= value <= FEAR_GREED_MAX:
            raise MarketDataError(SOURCE_FEAR_GREED, f"index {value} out of range")
        return value

    async def fetch_btc_dominance(self, session: aiohttp.ClientSession) -> Optional[float]:
        """Fetch BTC market-cap dominance. Returns None on any failure."""
        try:
            payload = await self._get_json(session, SOURCE_DOMINANCE, self.settings.global_url)
            return float(payload["data"]["market_cap_percentage"]["btc"])
        except MarketDataError as e:
            logger.warning(f"BTC dominance unavailable, using default {DEFAULT_BTC_DOMINANCE}: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                f"BTC dominance payload unexpected, using default {DEFAULT_BTC_DOMINANCE}: {e}"
            )
        return None

    async def fetch_market_snapshot(self) -> MarketSnapshot:
        """Fetch all three sources concurrently.

        Raises:
            MarketDataError: If the ticker or Fear & Greed source fails.
        """
        async with aiohttp.ClientSession(timeout=REQUEST_TIMEOUT) as session:
            tickers, fear_greed, dominance = await asyncio.gather(
                self.fetch_tickers(session),
                self.fetch_fear_greed(session),
                self.fetch_btc_dominance(session),
                return_exceptions=True,
            )

        failures = [r for r in (tickers, fear_greed) if isinstance(r, BaseException)]
        for failure in failures:
            logger.error(f"Load-bearing source failed: {failure}")
        if failures:
            raise failures[0]

        defaulted = dominance is None or isinstance(dominance, BaseException)
        return MarketSnapshot(
            pairs=tickers,
            fear_greed=fear_greed,
            btc_dominance=DEFAULT_BTC_DOMINANCE if defaulted else dominance,
            dominance_defaulted=defaulted,
        )
