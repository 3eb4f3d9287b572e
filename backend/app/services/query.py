"""Read-only accessors used by the API routers."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import OperationalError

from ..models import AssetSnapshot, MarketStats
from .snapshot_store import SnapshotStore, DEFAULT_RANKED_LIMIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CryptoEvent:
    """A calendar entry shown on the dashboard."""
    id: int
    title: str
    date: date
    type: str


EVENTS = (
    CryptoEvent(1, "Ethereum Pectra Upgrade", date(2026, 3, 15), "Upgrade"),
    CryptoEvent(2, "Bitcoin Halving Anniversary", date(2026, 4, 20), "Event"),
    CryptoEvent(3, "Solana Breakpoint 2026", date(2026, 9, 1), "Conference"),
)


class MarketQueryService:
    """Serves ranked assets, market stats and events.

    Before the first refresh (or before the schema exists) reads return an
    empty list or None instead of failing.
    """

    def __init__(self, store: SnapshotStore, ranked_limit: int = DEFAULT_RANKED_LIMIT):
        self.store = store
        self.ranked_limit = ranked_limit

    async def ranked_assets(self, limit: Optional[int] = None) -> List[AssetSnapshot]:
        try:
            return await self.store.top_assets(limit or self.ranked_limit)
        except OperationalError as e:
            logger.warning(f"Ranked assets unavailable: {e}")
            return []

    async def market_stats(self) -> Optional[MarketStats]:
        try:
            return await self.store.get_market_stats()
        except OperationalError as e:
            logger.warning(f"Market stats unavailable: {e}")
            return None

    def events(self) -> List[CryptoEvent]:
        return list(EVENTS)
