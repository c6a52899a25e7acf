"""
Background task for automatically refreshing mirrored search indexes.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List

from docindex.core.dependencies import get_db_manager, get_mirror_service
from docindex.domain.models import IndexVersion

logger = logging.getLogger(__name__)


async def update_mirrors_if_needed() -> List[IndexVersion]:
    """
    Daily job:
    - pick up on-disk changes made outside the service
    - re-download every auto-updating mirror
    - store only the versions whose content changed
    """
    db = get_db_manager()
    db.rebuild_catalog()

    mirrors = [m for m in db.get_site_config().mirrors if m.auto_update]
    if not mirrors:
        return []

    service = get_mirror_service()
    changed: List[IndexVersion] = []
    for mirror in mirrors:
        try:
            changed.extend(await service.refresh_source(mirror))
        except Exception as e:
            # Log error but continue with other mirrors
            logger.error(f"Failed to refresh mirror {mirror.name}: {e}", exc_info=True)

    logger.info(f"Mirror update finished: {len(changed)} versions changed")
    return changed


def _seconds_until(hour: int, minute: int) -> float:
    """
    Compute seconds until the next occurrence of the given local wall-clock time.
    """
    now = datetime.now()
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target = target + timedelta(days=1)
    return (target - now).total_seconds()


async def daily_update_loop(run_hour: int = 6, run_minute: int = 0):
    """
    Run the mirror updater job every day at a fixed local time (default 06:00).
    """
    while True:
        await asyncio.sleep(_seconds_until(run_hour, run_minute))
        try:
            await update_mirrors_if_needed()
        except Exception as e:
            logger.error(f"Error in daily update loop: {e}")
