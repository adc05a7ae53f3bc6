"""Background leaderboard refresh scheduler.

Refreshes every active room whose leaderboard has auto-update enabled, on a
configurable schedule. Uses asyncio tasks, no external scheduler dependency.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING

from .core.errors import StatsError

if TYPE_CHECKING:
    from .service import StatsService

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_HOURS = 6


async def refresh_auto_update_rooms(service: "StatsService") -> int:
    """Refresh all auto-updating rooms. Returns how many rooms were refreshed."""
    rooms = await service.room_store.list_active_rooms()
    refreshed = 0
    for room in rooms:
        settings = room.leaderboard
        if not (settings.enabled and settings.auto_update):
            continue
        try:
            report = await service.refresh_room(room.id)
        except StatsError as exc:
            logger.error("Scheduled refresh of room %s failed: %s", room.id, exc)
            continue
        refreshed += 1
        if report.warnings:
            logger.warning("Room %s refreshed with %d warning(s)", room.id, len(report.warnings))
    logger.info("Scheduled refresh complete: %d/%d rooms", refreshed, len(rooms))
    return refreshed


class StatsScheduler:
    """Manages periodic leaderboard refreshes."""

    def __init__(self, service: "StatsService"):
        self._service = service
        self._task: asyncio.Task | None = None
        self._running = False
        self._interval_seconds = int(float(os.environ.get(
            "REFRESH_INTERVAL_HOURS",
            str(DEFAULT_REFRESH_INTERVAL_HOURS),
        )) * 3600)

    async def start(self):
        """Start the background refresh loop."""
        if self._running:
            return
        if self._interval_seconds <= 0:
            logger.info("REFRESH_INTERVAL_HOURS is 0, stats scheduler disabled")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Stats scheduler started (interval: %d hours)", self._interval_seconds // 3600)

    async def stop(self):
        """Stop the background refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Stats scheduler stopped")

    async def _run_loop(self):
        while self._running:
            try:
                await asyncio.sleep(self._interval_seconds)
                if not self._running:
                    break
                await refresh_auto_update_rooms(self._service)
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error("Scheduled stats refresh failed: %s", exc, exc_info=True)
                await asyncio.sleep(60)
