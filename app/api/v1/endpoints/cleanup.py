from fastapi import APIRouter, Depends
from app.api import deps
from app.schemas.cleanup import SweepSummary
from app.services.sweeper import CleanupSweeper

router = APIRouter()

@router.get("/cleanup-variants", response_model=SweepSummary)
async def cleanup_variants(sweeper: CleanupSweeper = Depends(deps.get_sweeper)):
    """
    Delete expired temporary variants. Meant to be called by a scheduler.
    """
    return await sweeper.sweep(trigger="cleanup")

@router.get("/daily-cleanup", response_model=SweepSummary)
async def daily_cleanup(sweeper: CleanupSweeper = Depends(deps.get_sweeper)):
    """
    Daily cadence entry point; runs the same sweep and expiry policy.
    """
    return await sweeper.sweep(trigger="daily")
