"""Ranked assets router."""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from ..services.query import MarketQueryService
from .deps import get_query_service

router = APIRouter()


class CryptoResponse(BaseModel):
    """Latest scored snapshot of one asset."""
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str
    price_eur: Optional[float]
    change_24h: Optional[float]
    volume_24h: Optional[float]
    market_cap: Optional[float]
    technical_score: Optional[float]
    fundamental_score: Optional[float]
    sentiment_score: Optional[float]
    on_chain_score: Optional[float]
    final_score: Optional[float]
    risk_level: str
    recommendation: Optional[str]
    last_updated: Optional[datetime]


@router.get("/cryptos", response_model=List[CryptoResponse])
async def get_cryptos(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Max assets (default from config)"),
    service: MarketQueryService = Depends(get_query_service),
):
    """Get the top assets ranked by final score."""
    return await service.ranked_assets(limit)
