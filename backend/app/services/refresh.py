"""Refresh pipeline: one full fetch, score and persist cycle."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .market_data_gateway import MarketDataGateway
from .scoring import ScoringEngine, classify_market_risk
from .snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Summary of one refresh cycle."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    processed: int = 0
    failed: int = 0
    failed_symbols: List[str] = field(default_factory=list)
    fear_greed: Optional[int] = None
    btc_dominance: Optional[float] = None
    dominance_defaulted: bool = False
    market_risk: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "processed": self.processed,
            "failed": self.failed,
            "failed_symbols": list(self.failed_symbols),
            "fear_greed": self.fear_greed,
            "btc_dominance": self.btc_dominance,
            "dominance_defaulted": self.dominance_defaulted,
            "market_risk": self.market_risk,
        }


class RefreshPipeline:
    """Runs refresh cycles against an injected gateway, engine and store."""

    def __init__(
        self,
        gateway: MarketDataGateway,
        engine: ScoringEngine,
        store: SnapshotStore,
    ):
        self.gateway = gateway
        self.engine = engine
        self.store = store

    async def run_cycle(self) -> CycleResult:
        """Fetch, score and persist.

        Raises:
            MarketDataError: If a load-bearing source fails. Nothing is written.
        """
        result = CycleResult(started_at=datetime.utcnow())
        logger.info("Updating crypto data...")

        snapshot = await self.gateway.fetch_market_snapshot()

        market_risk = classify_market_risk(snapshot.fear_greed)
        result.fear_greed = snapshot.fear_greed
        result.btc_dominance = snapshot.btc_dominance
        result.dominance_defaulted = snapshot.dominance_defaulted
        result.market_risk = market_risk.value

        await self.store.upsert_market_stats(
            btc_dominance=snapshot.btc_dominance,
            fear_greed_index=snapshot.fear_greed,
            market_risk=market_risk,
        )

        for ticker in snapshot.pairs:
            try:
                scored = self.engine.score(ticker)
                await self.store.upsert_asset(scored)
                result.processed += 1
            except Exception as e:
                result.failed += 1
                result.failed_symbols.append(ticker.symbol)
                logger.error(f"Failed to update {ticker.symbol}: {e}")

        result.finished_at = datetime.utcnow()
        logger.info(
            f"Update complete: {result.processed} assets updated, {result.failed} failed"
        )
        return result
