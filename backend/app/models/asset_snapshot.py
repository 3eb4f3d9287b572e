"""Latest scored snapshot per trading pair."""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Float, DateTime

from .database import Base


class RiskLevel(str, Enum):
    """Risk bucket shared by assets and the market as a whole."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class AssetSnapshot(Base):
    """One row per trading pair, fully replaced on every refresh."""
    __tablename__ = "cryptos"

    symbol = Column(String(32), primary_key=True)  # e.g. BTCEUR
    name = Column(String(32), nullable=False)  # symbol without quote suffix

    # Market fields
    price_eur = Column(Float, nullable=True)
    change_24h = Column(Float, nullable=True)
    volume_24h = Column(Float, nullable=True)
    market_cap = Column(Float, nullable=True)  # not populated yet

    # Sub-scores (nominally 0-100, not clamped)
    technical_score = Column(Float, nullable=True)
    fundamental_score = Column(Float, nullable=True)
    sentiment_score = Column(Float, nullable=True)
    on_chain_score = Column(Float, nullable=True)

    # Composite
    final_score = Column(Float, nullable=True)
    risk_level = Column(String(16), nullable=False, default=RiskLevel.MEDIUM.value)
    recommendation = Column(String(255), nullable=True)

    # Timestamp
    last_updated = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<AssetSnapshot(symbol={self.symbol}, final_score={self.final_score})>"
