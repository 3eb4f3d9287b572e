"""Market status and events router."""

from datetime import date, datetime
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from ..services.query import MarketQueryService
from .deps import get_query_service

router = APIRouter()


class MarketStatusResponse(BaseModel):
    """Market-wide stats."""
    model_config = ConfigDict(from_attributes=True)

    btc_dominance: Optional[float]
    fear_greed_index: Optional[int]
    market_risk: Optional[str]
    last_updated: Optional[datetime]


class EventResponse(BaseModel):
    """Calendar entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    date: date
    type: str


@router.get("/market-status", response_model=Optional[MarketStatusResponse])
async def get_market_status(service: MarketQueryService = Depends(get_query_service)):
    """Get market stats, or null before the first refresh completes."""
    return await service.market_stats()


@router.get("/events", response_model=List[EventResponse])
async def get_events(service: MarketQueryService = Depends(get_query_service)):
    """Get upcoming crypto events."""
    return service.events()
