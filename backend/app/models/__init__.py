# Database Models

from .database import Base, engine, async_session_maker, init_db, create_session_maker
from .asset_snapshot import AssetSnapshot, RiskLevel
from .market_stats import MarketStats, MARKET_STATS_ID

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "init_db",
    "create_session_maker",
    "AssetSnapshot",
    "RiskLevel",
    "MarketStats",
    "MARKET_STATS_ID",
]
