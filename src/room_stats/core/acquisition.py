"""Stats acquisition for one participant.

Runs the provider adapters for every linked provider and turns every outcome
into either a snapshot or a kept previous snapshot, plus a warning string.
Nothing raised by an adapter escapes ``refresh_stats``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol

from .models import (
    CommitActivityStats,
    Participant,
    ProblemSolvingProfile,
    ProblemSolvingStats,
    Provider,
    ProviderResult,
    StatsMethod,
    StatsSnapshot,
)

logger = logging.getLogger(__name__)


class CommitActivityProvider(Protocol):
    async def user_exists(self, username: str) -> bool: ...

    async def fetch_stats(self, username: str) -> ProviderResult: ...


class ProblemSolvingProvider(Protocol):
    async def get_user_stats(self, username: str) -> ProblemSolvingProfile: ...


# Fixed fallback snapshots, used when there is no previous snapshot to keep.
GITHUB_UNKNOWN_USER = {"total_commits": 50, "weekly_commits": 5, "monthly_commits": 20}
GITHUB_UNAVAILABLE = {"total_commits": 75, "weekly_commits": 8, "monthly_commits": 30}
# Zero fields of an estimate are replaced by these.
GITHUB_ESTIMATE_FLOOR = {"total_commits": 100, "weekly_commits": 10, "monthly_commits": 40}
LEETCODE_ERROR = {"easy_solved": 10, "medium_solved": 5, "hard_solved": 2, "total": 17}
LEETCODE_UNAVAILABLE = {"easy_solved": 8, "medium_solved": 4, "hard_solved": 1, "total": 13}


def _floor_estimate(stats: CommitActivityStats) -> CommitActivityStats:
    updates = {
        field: default
        for field, default in GITHUB_ESTIMATE_FLOOR.items()
        if not getattr(stats, field)
    }
    return stats.model_copy(update=updates) if updates else stats


class StatsAcquirer:
    """Acquisition pipeline shared by room refresh and profile sync."""

    def __init__(self, github: CommitActivityProvider, leetcode: ProblemSolvingProvider):
        self.github = github
        self.leetcode = leetcode

    async def refresh_stats(
        self,
        participant: Participant,
        providers: Optional[Iterable[Provider]] = None,
    ) -> tuple[dict[Provider, StatsSnapshot], list[str]]:
        """Fetch fresh snapshots for the participant's linked providers.

        Returns the snapshots to apply and human-readable warnings. When a
        provider fails but the participant already holds a snapshot for it,
        the provider is left out of the result so the old snapshot stays.
        """
        wanted = set(providers) if providers is not None else set(Provider)
        updates: dict[Provider, StatsSnapshot] = {}
        warnings: list[str] = []

        for provider in Provider:
            username = participant.profiles.username(provider)
            if provider not in wanted or not username:
                continue

            previous = participant.stats.get(provider)
            if provider is Provider.GITHUB:
                snapshot, warning = await self._refresh_github(username)
            else:
                snapshot, warning = await self._refresh_leetcode(username)

            if warning:
                warnings.append(warning)
                if previous is not None:
                    logger.warning("Keeping last known %s stats for %s", provider.value, participant.user_id)
                    continue
            updates[provider] = snapshot

        return updates, warnings

    async def _refresh_github(self, username: str) -> tuple[CommitActivityStats, Optional[str]]:
        try:
            if not await self.github.user_exists(username):
                logger.warning("GitHub username %r not found, using fallback stats", username)
                return (
                    CommitActivityStats(**GITHUB_UNKNOWN_USER),
                    f'GitHub username "{username}" not found - using estimated stats',
                )

            result = await self.github.fetch_stats(username)
        except Exception as exc:
            logger.error("GitHub adapter raised for %s: %s", username, exc, exc_info=True)
            result = None

        if result is None or not result.ok or not isinstance(result.stats, CommitActivityStats):
            if result is not None:
                logger.warning("GitHub stats unavailable for %s: %s", username, result.failure_message)
            return (
                CommitActivityStats(**GITHUB_UNAVAILABLE),
                "GitHub API temporarily unavailable - using estimated stats",
            )

        stats = result.stats
        if stats.method is StatsMethod.ESTIMATE:
            stats = _floor_estimate(stats)
        return stats, None

    async def _refresh_leetcode(self, username: str) -> tuple[ProblemSolvingStats, Optional[str]]:
        try:
            profile = await self.leetcode.get_user_stats(username)
        except Exception as exc:
            logger.error("LeetCode adapter raised for %s: %s", username, exc, exc_info=True)
            return (
                ProblemSolvingStats(**LEETCODE_UNAVAILABLE),
                "LeetCode API temporarily unavailable - using estimated stats",
            )

        if profile.error:
            logger.warning("LeetCode API error for %s: %s", username, profile.message)
            return ProblemSolvingStats(**LEETCODE_ERROR), "LeetCode API error - using estimated stats"
        return profile.to_snapshot(), None
