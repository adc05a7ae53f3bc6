"""Propagate a user's linked-profile changes to every room they take part in.

Each room is fetched, updated and saved on its own. A failure in one room is
recorded in the report and the loop moves on; there is no cross-room
transaction.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .core.acquisition import StatsAcquirer
from .core.errors import PersistenceFailure
from .core.models import (
    Provider,
    ProfileUpdate,
    Room,
    RoomSyncResult,
    SyncReport,
    utcnow,
)
from .stores import RoomStore

logger = logging.getLogger(__name__)


async def _sync_room(
    room: Room,
    user_id: str,
    update: ProfileUpdate,
    providers: Iterable[Provider],
    room_store: RoomStore,
    acquirer: StatsAcquirer,
) -> RoomSyncResult:
    participant = room.find_participant(user_id)
    if participant is None:
        return RoomSyncResult(room_id=room.id, ok=False, error="User is not an active participant")

    participant.link_profiles(update)
    wanted = [p for p in providers if participant.profiles.username(p)]

    try:
        updates, warnings = await acquirer.refresh_stats(participant, wanted)
    except Exception as exc:
        logger.error("Stats refresh failed in room %s for %s: %s", room.id, user_id, exc, exc_info=True)
        return RoomSyncResult(room_id=room.id, ok=False, error=f"Stats refresh failed: {exc}")

    now = utcnow()
    participant.apply_stats(updates, refreshed_at=now)
    room.last_activity = now

    try:
        await room_store.save_room(room)
    except PersistenceFailure as exc:
        logger.error("Could not save room %s while syncing %s: %s", room.id, user_id, exc)
        return RoomSyncResult(room_id=room.id, ok=False, warnings=warnings, error=str(exc))
    except Exception as exc:
        logger.error("Unexpected error saving room %s while syncing %s: %s", room.id, user_id, exc, exc_info=True)
        return RoomSyncResult(room_id=room.id, ok=False, warnings=warnings, error=f"Save failed: {exc}")

    return RoomSyncResult(room_id=room.id, ok=True, refreshed=list(updates), warnings=warnings)


async def sync_user_profiles(
    user_id: str,
    update: ProfileUpdate,
    room_store: RoomStore,
    acquirer: StatsAcquirer,
    providers: Optional[Iterable[Provider]] = None,
) -> SyncReport:
    """Apply ``update`` in every active room of ``user_id`` and refresh stats.

    By default only the providers named in ``update`` are refreshed. Pass
    ``providers`` to force a refresh of others as well.
    """
    report = SyncReport(user_id=user_id)
    targets = list(providers) if providers is not None else update.changed()

    try:
        rooms = await room_store.list_rooms_for_user(user_id)
    except PersistenceFailure as exc:
        logger.error("Could not list rooms for %s: %s", user_id, exc)
        raise

    for room in rooms:
        result = await _sync_room(room, user_id, update, targets, room_store, acquirer)
        report.results.append(result)

    logger.info(
        "Updated participant stats in %d/%d rooms for user %s",
        report.updated_count, len(rooms), user_id,
    )
    return report


async def refresh_user_rooms(
    user_id: str,
    room_store: RoomStore,
    acquirer: StatsAcquirer,
    profiles: Optional[ProfileUpdate] = None,
) -> SyncReport:
    """Force-refresh every provider of ``user_id`` in all their rooms."""
    return await sync_user_profiles(
        user_id,
        profiles or ProfileUpdate(),
        room_store,
        acquirer,
        providers=list(Provider),
    )
