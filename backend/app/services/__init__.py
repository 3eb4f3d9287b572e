# Business Logic Services

from .config import (
    ConfigService,
    config_service,
    ConfigValidationException,
    ConfigValidationError,
    RadarSettings,
)
from .market_data_gateway import (
    MarketDataGateway,
    MarketDataError,
    MarketSnapshot,
    RawTicker,
    DEFAULT_BTC_DOMINANCE,
)
from .scoring import (
    ScoringEngine,
    ScoredAsset,
    SubScores,
    SubScoreProvider,
    RandomSubScoreProvider,
    classify_risk,
    classify_market_risk,
)
from .snapshot_store import SnapshotStore
from .refresh import RefreshPipeline, CycleResult
from .scheduler import UpdateScheduler, SchedulerState
from .query import MarketQueryService, CryptoEvent, EVENTS

__all__ = [
    # Config
    "ConfigService",
    "config_service",
    "ConfigValidationException",
    "ConfigValidationError",
    "RadarSettings",
    # Gateway
    "MarketDataGateway",
    "MarketDataError",
    "MarketSnapshot",
    "RawTicker",
    "DEFAULT_BTC_DOMINANCE",
    # Scoring
    "ScoringEngine",
    "ScoredAsset",
    "SubScores",
    "SubScoreProvider",
    "RandomSubScoreProvider",
    "classify_risk",
    "classify_market_risk",
    # Store
    "SnapshotStore",
    # Refresh
    "RefreshPipeline",
    "CycleResult",
    "UpdateScheduler",
    "SchedulerState",
    # Query
    "MarketQueryService",
    "CryptoEvent",
    "EVENTS",
]
