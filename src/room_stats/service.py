"""Stats operations exposed to the tool layer.

``StatsService`` wires the provider adapters, the acquisition pipeline and the
room/user stores together. It does no HTTP routing and no authentication.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Optional

from .core.acquisition import StatsAcquirer
from .core.clients.github import GitHubClient
from .core.clients.leetcode import LeetCodeClient
from .core.errors import ParticipantNotFound, RoomNotFound, UserNotFound
from .core.models import (
    CommitActivityStats,
    Leaderboard,
    Participant,
    ParticipantRefresh,
    ProfileUpdate,
    Provider,
    Room,
    RoomRefreshReport,
    StatsMethod,
    StatsSnapshot,
    SyncReport,
    User,
    utcnow,
)
from .core.normalization import normalize_commit_snapshot, normalize_problem_snapshot
from .core.ranking import build_leaderboard
from .core.scoring import problem_solving_score
from .stores import RoomStore, UserStore
from .sync import refresh_user_rooms, sync_user_profiles

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_CONCURRENCY = 4

_PREFETCHED_NORMALIZERS = {
    Provider.GITHUB: normalize_commit_snapshot,
    Provider.LEETCODE: normalize_problem_snapshot,
}


class StatsService:
    """Single-identity lookups, room refreshes, leaderboards and profile sync."""

    def __init__(
        self,
        room_store: RoomStore,
        user_store: UserStore,
        github: Optional[GitHubClient] = None,
        leetcode: Optional[LeetCodeClient] = None,
        refresh_concurrency: Optional[int] = None,
    ):
        self.room_store = room_store
        self.user_store = user_store
        self.github = github or GitHubClient()
        self.leetcode = leetcode or LeetCodeClient()
        self.acquirer = StatsAcquirer(self.github, self.leetcode)
        if refresh_concurrency is None:
            refresh_concurrency = int(os.environ.get("ROOM_REFRESH_CONCURRENCY", str(DEFAULT_REFRESH_CONCURRENCY)))
        self._refresh_concurrency = max(1, refresh_concurrency)

    # ─── Single identity ────────────────────────────────────────────────────

    async def get_commit_stats(self, username: str) -> dict:
        """Commit-activity stats for one username, with the method that produced them."""
        result = await self.github.fetch_stats(username)
        if not result.ok or result.stats is None:
            # Both strategies failed: report a zeroed estimate rather than no stats.
            logger.warning("No GitHub stats for %s: %s", username, result.failure_message)
            fallback = CommitActivityStats(method=StatsMethod.ESTIMATE, public_repos=0)
            return {
                "method": fallback.method.value,
                "stats": fallback.model_dump(mode="json"),
                "fallback_reason": result.failure_message,
            }
        return {
            "method": result.stats.method.value,
            "stats": result.stats.model_dump(mode="json"),
            "fallback_reason": result.failure_message or None,
        }

    async def get_problem_stats(self, username: str) -> dict:
        profile = await self.leetcode.get_user_stats(username)
        return {
            "profile": profile.model_dump(mode="json"),
            "score": problem_solving_score(profile),
        }

    # ─── Rooms ──────────────────────────────────────────────────────────────

    async def _load_room(self, room_id: str) -> Room:
        room = await self.room_store.get_room(room_id)
        if room is None or not room.is_active:
            raise RoomNotFound(room_id)
        return room

    async def refresh_participant(
        self,
        room_id: str,
        participant_id: str,
        profiles: Optional[ProfileUpdate] = None,
        prefetched: Optional[dict[str, dict[str, Any]]] = None,
    ) -> ParticipantRefresh:
        """Refresh one participant's stats inside one room and save the room.

        ``profiles`` is merged into the participant first. ``prefetched``
        maps a provider name to stats the caller already holds; those are
        normalized and used instead of calling the provider.
        """
        room = await self._load_room(room_id)
        participant = room.find_participant(participant_id)
        if participant is None:
            raise ParticipantNotFound(room_id, participant_id)

        if profiles is not None:
            participant.link_profiles(profiles)

        supplied = self._normalize_prefetched(participant, prefetched or {})
        remaining = [p for p in Provider if p not in supplied]
        updates, warnings = await self.acquirer.refresh_stats(participant, remaining)
        updates = {**supplied, **updates}

        now = utcnow()
        participant.apply_stats(updates, refreshed_at=now)
        room.last_activity = now
        await self.room_store.save_room(room)

        logger.info(
            "Refreshed %s in room %s: %s",
            participant_id, room_id, ", ".join(p.value for p in updates) or "nothing to update",
        )
        return ParticipantRefresh(updates=updates, warnings=warnings, participant=participant)

    @staticmethod
    def _normalize_prefetched(participant: Participant, prefetched: dict[str, dict[str, Any]]) -> dict[Provider, StatsSnapshot]:
        supplied: dict[Provider, StatsSnapshot] = {}
        for name, raw in prefetched.items():
            try:
                provider = Provider(name)
            except ValueError:
                logger.warning("Ignoring prefetched stats for unknown provider %r", name)
                continue
            if not raw or not participant.profiles.username(provider):
                continue
            supplied[provider] = _PREFETCHED_NORMALIZERS[provider](raw)
        return supplied

    async def refresh_room(self, room_id: str) -> RoomRefreshReport:
        """Refresh every active participant; one participant's outage never blocks another."""
        room = await self._load_room(room_id)
        semaphore = asyncio.Semaphore(self._refresh_concurrency)

        async def refresh_one(participant: Participant) -> tuple[bool, list[str]]:
            async with semaphore:
                try:
                    updates, warnings = await self.acquirer.refresh_stats(participant)
                except Exception as exc:
                    logger.error("Refresh failed for %s in room %s: %s", participant.user_id, room_id, exc, exc_info=True)
                    return False, [f"Stats refresh failed for {participant.name or participant.user_id}: {exc}"]
            label = participant.name or participant.user_id
            if updates:
                participant.apply_stats(updates)
            return bool(updates), [f"{label}: {w}" for w in warnings]

        active = [p for p in room.participants if p.is_active]
        results = await asyncio.gather(*(refresh_one(p) for p in active))

        report = RoomRefreshReport(room_id=room_id)
        for updated, warnings in results:
            report.updated_count += int(updated)
            report.warnings.extend(warnings)

        room.last_activity = utcnow()
        await self.room_store.save_room(room)
        logger.info("Leaderboard refreshed for %d participants in room %s", report.updated_count, room_id)
        return report

    async def compute_leaderboard(self, room_id: str) -> Leaderboard:
        room = await self._load_room(room_id)
        entries = build_leaderboard(room.participants, room.leaderboard)
        return Leaderboard(room_id=room.id, entries=entries, settings=room.leaderboard)

    # ─── Users ──────────────────────────────────────────────────────────────

    async def update_user_profiles(self, user_id: str, update: ProfileUpdate) -> tuple[User, Optional[SyncReport]]:
        """Store the new usernames, then propagate them to the user's rooms.

        A sync failure is logged and does not fail the profile update.
        """
        user = await self.user_store.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)

        user.profiles = update.apply(user.profiles)
        await self.user_store.save_user(user)

        if not update.changed():
            return user, None
        try:
            report = await sync_user_profiles(user_id, update, self.room_store, self.acquirer)
        except Exception as exc:
            logger.error("Error updating participant stats in rooms for %s: %s", user_id, exc, exc_info=True)
            return user, None
        return user, report

    async def refresh_user(self, user_id: str) -> SyncReport:
        """Re-apply the stored usernames and refresh every room of the user."""
        user = await self.user_store.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)
        stored = ProfileUpdate(github=user.profiles.github, leetcode=user.profiles.leetcode)
        return await refresh_user_rooms(user_id, self.room_store, self.acquirer, profiles=stored)
