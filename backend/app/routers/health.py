"""Health check router."""

from typing import Optional
from fastapi import APIRouter, Depends

from ..services.scheduler import UpdateScheduler
from .deps import get_scheduler

router = APIRouter()


@router.get("/health")
async def health_check(scheduler: Optional[UpdateScheduler] = Depends(get_scheduler)):
    """Health check endpoint with refresh scheduler status."""
    scheduler_info = None
    if scheduler is not None:
        last_result = scheduler.last_result
        scheduler_info = {
            "state": scheduler.state.value,
            "interval_seconds": scheduler.interval_seconds,
            "last_run_at": scheduler.last_run_at.isoformat() if scheduler.last_run_at else None,
            "last_error": scheduler.last_error,
            "completed_runs": scheduler.completed_runs,
            "skipped_triggers": scheduler.skipped_triggers,
            "last_result": last_result.to_dict() if hasattr(last_result, "to_dict") else None,
        }

    return {
        "status": "ok",
        "service": "crypto-radar",
        "version": "1.0.0",
        "scheduler": scheduler_info,
    }
