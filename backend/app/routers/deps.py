"""Shared FastAPI dependencies, resolved from application state."""

from typing import Optional

from fastapi import HTTPException, Request, status

from ..services.query import MarketQueryService
from ..services.scheduler import UpdateScheduler


def get_query_service(request: Request) -> MarketQueryService:
    """Query service built at startup by the lifespan handler."""
    service = getattr(request.app.state, "query_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store not initialized",
        )
    return service


def get_scheduler(request: Request) -> Optional[UpdateScheduler]:
    return getattr(request.app.state, "scheduler", None)
