"""Room leaderboard construction."""

from __future__ import annotations

import logging
import math
from typing import Iterable

from .models import LeaderboardEntry, LeaderboardSettings, Participant, ParticipantStats
from .scoring import composite_score, corrected_commit_stats

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves upwards (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _display_stats(participant: Participant) -> ParticipantStats:
    github = participant.stats.github
    if github is None:
        return participant.stats
    return participant.stats.model_copy(update={"github": corrected_commit_stats(github)})


def build_leaderboard(
    participants: Iterable[Participant],
    settings: LeaderboardSettings,
) -> list[LeaderboardEntry]:
    """Score, sort and rank the active participants of a room.

    Sorting is stable on the rounded score, so tied participants keep their
    input order and receive consecutive ranks.
    """
    scored = []
    for participant in participants:
        if participant.is_active is False:
            continue
        scored.append((round_half_up(composite_score(participant, settings)), participant))

    scored.sort(key=lambda item: item[0], reverse=True)

    entries = []
    for position, (score, participant) in enumerate(scored, start=1):
        entries.append(LeaderboardEntry(
            user_id=participant.user_id,
            name=participant.name,
            picture=participant.picture,
            role=participant.role,
            profiles=participant.profiles,
            stats=_display_stats(participant),
            total_score=score,
            rank=position,
            last_updated=participant.stats_last_updated,
        ))
    return entries
