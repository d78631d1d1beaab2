"""
Run one cleanup sweep over temporary variants and print the summary.

For cron or any external scheduler that cannot call the HTTP endpoint.

Usage (from the repository root):
  python -m scripts.run_cleanup
  python -m scripts.run_cleanup --max-age-hours 24 --limit 250

Production (cron example):
  */30 * * * * cd /app && python -m scripts.run_cleanup
"""
import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta
from typing import Optional

from app.api.deps import get_event_log, get_variant_store
from app.core.config import settings
from app.core.errors import CatalogError
from app.core.event_log import EventLog
from app.services.metadata_store import VariantStore
from app.services.sweeper import CleanupSweeper, DeleteAtPassed, ExpiryPolicy, OlderThan

logger = logging.getLogger(__name__)


async def run(
    max_age_hours: float,
    limit: int,
    store: Optional[VariantStore] = None,
    event_log: Optional[EventLog] = None,
) -> int:
    policy = ExpiryPolicy([DeleteAtPassed(), OlderThan(timedelta(hours=max_age_hours))])
    sweeper = CleanupSweeper(
        store if store is not None else get_variant_store(),
        event_log if event_log is not None else get_event_log(),
        policy=policy,
        scan_limit=limit,
    )
    try:
        summary = await sweeper.sweep(trigger="script")
    except CatalogError as e:
        logger.error(f"Cleanup aborted: {e.message}")
        print(json.dumps({"success": False, "error": e.message}))
        return 1
    print(json.dumps(summary.model_dump(by_alias=True), indent=2))
    return 0 if summary.success else 1


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    parser = argparse.ArgumentParser(description="Delete expired temporary variants")
    parser.add_argument("--max-age-hours", type=float, default=settings.TEMP_VARIANT_MAX_AGE_HOURS,
                        help="Delete variants created longer ago than this, whatever their delete_at")
    parser.add_argument("--limit", type=int, default=settings.CLEANUP_SCAN_LIMIT,
                        help="Maximum temporary variants considered in this pass")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.max_age_hours, args.limit)))


if __name__ == "__main__":
    main()
