from fastapi import APIRouter, Depends
from app.api import deps
from app.core.event_log import DEFAULT_QUERY_LIMIT, EventLog
from app.schemas.cleanup import LogsResponse

router = APIRouter()

@router.get("/logs", response_model=LogsResponse)
async def get_logs(
    limit: str = str(DEFAULT_QUERY_LIMIT),
    event_log: EventLog = Depends(deps.get_event_log),
):
    """Most recent events, oldest first. ``limit`` is clamped to 1..500."""
    logs = event_log.query_recent(limit)
    return {"success": True, "count": len(logs), "logs": logs}
