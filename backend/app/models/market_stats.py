"""Market-wide statistics singleton."""

from datetime import datetime
from sqlalchemy import Column, Integer, Float, String, DateTime, CheckConstraint

from .database import Base

MARKET_STATS_ID = 1


class MarketStats(Base):
    """Market-wide stats. Holds at most one row (id == 1)."""
    __tablename__ = "market_stats"
    __table_args__ = (CheckConstraint("id = 1", name="ck_market_stats_singleton"),)

    id = Column(Integer, primary_key=True, default=MARKET_STATS_ID)
    btc_dominance = Column(Float, nullable=True)
    fear_greed_index = Column(Integer, nullable=True)  # 0-100
    market_risk = Column(String(16), nullable=True)

    # Timestamp
    last_updated = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<MarketStats(fear_greed={self.fear_greed_index}, risk={self.market_risk})>"
