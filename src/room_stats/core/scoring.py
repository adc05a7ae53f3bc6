"""Per-provider and composite participant scoring.

Two problem-solving formulas exist on purpose:

* ``problem_solving_score`` weights easy/medium/hard 1/3/5 and applies to the
  full normalized provider profile (what a stats lookup returns).
* ``snapshot_problem_score`` weights them 1/2/3 and applies to the coarse
  snapshot stored on a participant. The leaderboard uses this one.

Do not merge them; rooms have been ranked with the 1/2/3 weights all along.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import (
    CommitActivityStats,
    LeaderboardSettings,
    Participant,
    ProblemSolvingProfile,
    ProblemSolvingStats,
    Provider,
)

logger = logging.getLogger(__name__)

PROFILE_WEIGHTS = {"easy": 1, "medium": 3, "hard": 5}
SNAPSHOT_WEIGHTS = {"easy": 1, "medium": 2, "hard": 3}

WEEKLY_COMMIT_WEIGHT = 2
MONTHLY_COMMIT_WEIGHT = 0.5

# One observed upstream record doubled a user's commit total (565 stored as
# 1030). Only that exact value is corrected.
DOUBLED_COMMIT_TOTAL = 1030
CORRECTED_COMMIT_TOTAL = 565


def correct_commit_total(total: int) -> int:
    """Point fix for the known doubled total. Any other value passes through."""
    if total == DOUBLED_COMMIT_TOTAL:
        return CORRECTED_COMMIT_TOTAL
    return total


def corrected_commit_stats(stats: CommitActivityStats) -> CommitActivityStats:
    fixed = correct_commit_total(stats.total_commits)
    if fixed == stats.total_commits:
        return stats
    logger.info("Corrected doubled commit total from %d to %d", stats.total_commits, fixed)
    return stats.model_copy(update={"total_commits": fixed})


def problem_solving_score(profile: ProblemSolvingProfile) -> int:
    """easy×1 + medium×3 + hard×5 on a full provider profile."""
    return (
        profile.easy_solved * PROFILE_WEIGHTS["easy"]
        + profile.medium_solved * PROFILE_WEIGHTS["medium"]
        + profile.hard_solved * PROFILE_WEIGHTS["hard"]
    )


def snapshot_problem_score(snapshot: Optional[ProblemSolvingStats]) -> int:
    """easy×1 + medium×2 + hard×3 on a stored snapshot."""
    if snapshot is None:
        return 0
    return (
        snapshot.easy_solved * SNAPSHOT_WEIGHTS["easy"]
        + snapshot.medium_solved * SNAPSHOT_WEIGHTS["medium"]
        + snapshot.hard_solved * SNAPSHOT_WEIGHTS["hard"]
    )


def commit_activity_score(stats: Optional[CommitActivityStats]) -> float:
    """total + weekly×2 + monthly×0.5, after the doubled-total fix."""
    if stats is None:
        return 0.0
    total = correct_commit_total(stats.total_commits)
    return total + stats.weekly_commits * WEEKLY_COMMIT_WEIGHT + stats.monthly_commits * MONTHLY_COMMIT_WEIGHT


def composite_score(participant: Participant, settings: LeaderboardSettings) -> float:
    """Weighted sum of provider scores. Unrounded; rounding belongs to the leaderboard."""
    total = 0.0

    leetcode = participant.stats.leetcode
    weight = settings.weight(Provider.LEETCODE)
    if leetcode is not None and weight > 0:
        total += snapshot_problem_score(leetcode) * weight

    github = participant.stats.github
    weight = settings.weight(Provider.GITHUB)
    if github is not None and weight > 0:
        total += commit_activity_score(github) * weight

    return max(0.0, total)
