"""Snapshot store: latest scored snapshot per asset plus market-wide stats.

Every write is a single-row SQLite upsert committed on its own, so readers
never see a half-written row. Writes of one refresh cycle are not grouped in
a transaction; readers may observe a mix of old and new rows mid-cycle.
"""

import logging
import math
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import AssetSnapshot, MarketStats, MARKET_STATS_ID, RiskLevel
from .scoring import ScoredAsset, display_name

logger = logging.getLogger(__name__)

DEFAULT_RANKED_LIMIT = 10


def _clean(value: Optional[float]) -> Optional[float]:
    """SQLite has no NaN; store it as NULL."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return value


class SnapshotStore:
    """Owns all persisted radar state."""

    def __init__(
        self,
        session_maker: async_sessionmaker,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """Initialize snapshot store.

        Args:
            session_maker: Factory for database sessions
            clock: Source of last-updated timestamps
        """
        self._session_maker = session_maker
        self._clock = clock

    async def upsert_asset(self, asset: ScoredAsset) -> datetime:
        """Insert or fully replace the row for an asset.

        Returns:
            The last-updated timestamp written
        """
        now = self._clock()
        values = {
            "symbol": asset.symbol,
            "name": asset.name,
            "price_eur": _clean(asset.price),
            "change_24h": _clean(asset.change_24h),
            "volume_24h": _clean(asset.volume_24h),
            "market_cap": None,
            "technical_score": _clean(asset.scores.technical),
            "fundamental_score": _clean(asset.scores.fundamental),
            "sentiment_score": _clean(asset.scores.sentiment),
            "on_chain_score": _clean(asset.scores.on_chain),
            "final_score": _clean(asset.final_score),
            "risk_level": asset.risk_level.value,
            "recommendation": asset.recommendation,
            "last_updated": now,
        }
        stmt = insert(AssetSnapshot).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AssetSnapshot.symbol],
            set_={k: stmt.excluded[k] for k in values if k != "symbol"},
        )
        async with self._session_maker() as session:
            await session.execute(stmt)
            await session.commit()
        return now

    async def upsert_market_stats(
        self,
        btc_dominance: float,
        fear_greed_index: int,
        market_risk: RiskLevel,
    ) -> datetime:
        """Insert or fully replace the market stats singleton."""
        now = self._clock()
        values = {
            "id": MARKET_STATS_ID,
            "btc_dominance": _clean(btc_dominance),
            "fear_greed_index": fear_greed_index,
            "market_risk": market_risk.value,
            "last_updated": now,
        }
        stmt = insert(MarketStats).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[MarketStats.id],
            set_={k: stmt.excluded[k] for k in values if k != "id"},
        )
        async with self._session_maker() as session:
            await session.execute(stmt)
            await session.commit()
        return now

    async def top_assets(self, limit: int = DEFAULT_RANKED_LIMIT) -> List[AssetSnapshot]:
        """Assets by final score descending, ties by symbol. NULL scores rank last."""
        stmt = (
            select(AssetSnapshot)
            .order_by(AssetSnapshot.final_score.desc(), AssetSnapshot.symbol)
            .limit(limit)
        )
        async with self._session_maker() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_asset(self, symbol: str) -> Optional[AssetSnapshot]:
        async with self._session_maker() as session:
            return await session.get(AssetSnapshot, symbol.upper())

    async def get_market_stats(self) -> Optional[MarketStats]:
        """The market stats singleton, or None before the first refresh."""
        async with self._session_maker() as session:
            return await session.get(MarketStats, MARKET_STATS_ID)

    async def count_assets(self) -> int:
        async with self._session_maker() as session:
            result = await session.execute(select(func.count()).select_from(AssetSnapshot))
            return result.scalar_one()

    async def seed_assets(self, symbols: Iterable[str], quote_currency: str) -> int:
        """Insert placeholder rows, only if the asset table is empty.

        Returns:
            Number of rows inserted
        """
        async with self._session_maker() as session:
            result = await session.execute(select(func.count()).select_from(AssetSnapshot))
            if result.scalar_one() > 0:
                return 0

            now = self._clock()
            rows = [
                AssetSnapshot(
                    symbol=symbol.upper(),
                    name=display_name(symbol.upper(), quote_currency),
                    price_eur=0.0,
                    technical_score=0.0,
                    fundamental_score=0.0,
                    sentiment_score=0.0,
                    on_chain_score=0.0,
                    final_score=0.0,
                    risk_level=RiskLevel.MEDIUM.value,
                    last_updated=now,
                )
                for symbol in dict.fromkeys(s.upper() for s in symbols)
            ]
            session.add_all(rows)
            await session.commit()

        logger.info(f"Seeded {len(rows)} placeholder assets")
        return len(rows)
