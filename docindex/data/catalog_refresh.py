"""
Keep the in-memory catalog in sync with the data directory.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from docindex.core.dependencies import get_db_manager

logger = logging.getLogger(__name__)

_REFRESH_TASK: Optional[asyncio.Task] = None


async def _periodic_rebuild_loop() -> None:
    """
    Background task that refreshes the in-memory catalog every refresh_interval_seconds.
    """
    db = get_db_manager()
    while True:
        config = db.get_site_config()
        await asyncio.sleep(config.refresh_interval_seconds)
        try:
            db.rebuild_catalog()
        except Exception as e:
            logger.error(f"Failed to rebuild catalog: {e}", exc_info=True)


async def initialize_catalog() -> None:
    """
    Called by FastAPI on startup.

    Responsibilities:
    * Resolve and create the data directory.
    * Load + persist site.json (applying defaults where needed).
    * Build the initial in-memory catalog.
    * Start a background task that rebuilds the catalog periodically.
    """
    global _REFRESH_TASK

    # get_db_manager() loads site.json and builds the catalog on first use.
    db = get_db_manager()
    logger.info(f"Catalog ready with {len(db.get_all_versions())} versions")

    if _REFRESH_TASK is None:
        _REFRESH_TASK = asyncio.create_task(_periodic_rebuild_loop())
