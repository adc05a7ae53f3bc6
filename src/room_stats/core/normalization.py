"""Table-driven normalization of provider response shapes.

Each canonical field lists the source names it may arrive under, in priority
order. The first candidate that is present and coercible wins. Canonical names
are always the last candidate, so normalizing a normalized record is a no-op.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Mapping, Optional

from .models import CommitActivityStats, ProblemSolvingProfile, ProblemSolvingStats, StatsMethod

logger = logging.getLogger(__name__)

PROBLEM_PROFILE_FIELDS: dict[str, tuple[str, ...]] = {
    "total_solved": ("totalSolved", "solvedProblem", "total_solved"),
    "total_questions": ("totalQuestions", "total_problems", "total_questions"),
    "easy_solved": ("easySolved", "easy", "easy_solved"),
    "total_easy": ("totalEasy", "total_easy"),
    "medium_solved": ("mediumSolved", "medium", "medium_solved"),
    "total_medium": ("totalMedium", "total_medium"),
    "hard_solved": ("hardSolved", "hard", "hard_solved"),
    "total_hard": ("totalHard", "total_hard"),
    "acceptance_rate": ("acceptanceRate", "acceptance_rate"),
    "ranking": ("ranking", "rank"),
    "contribution_points": ("contributionPoints", "contribution_points"),
    "reputation": ("reputation",),
}

# Stored snapshots: legacy documents use camelCase and bare difficulty names.
PROBLEM_SNAPSHOT_FIELDS: dict[str, tuple[str, ...]] = {
    "easy_solved": ("easySolved", "easy", "easy_solved"),
    "medium_solved": ("mediumSolved", "medium", "medium_solved"),
    "hard_solved": ("hardSolved", "hard", "hard_solved"),
    "total": ("totalSolved", "total", "total_solved"),
    "acceptance_rate": ("acceptanceRate", "acceptance_rate"),
}

COMMIT_SNAPSHOT_FIELDS: dict[str, tuple[str, ...]] = {
    "total_commits": ("totalCommits", "total", "total_commits"),
    "weekly_commits": ("weeklyCommits", "thisWeek", "weekly_commits"),
    "monthly_commits": ("monthlyCommits", "thisMonth", "monthly_commits"),
    "public_repos": ("publicRepos", "public_repos"),
}

_OPTIONAL_FIELDS = {"acceptance_rate", "ranking", "public_repos"}


def _to_count(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a count")
    return max(0, int(float(value)))


def _to_rate(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("boolean is not a rate")
    rate = float(value)
    if not math.isfinite(rate):
        raise ValueError("rate must be finite")
    return rate


def _to_rank(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a rank")
    return int(float(value))


_COERCERS: dict[str, Callable[[Any], Any]] = {
    "acceptance_rate": _to_rate,
    "ranking": _to_rank,
}


def pick_field(data: Mapping[str, Any], candidates: tuple[str, ...], coerce: Callable[[Any], Any]) -> Optional[Any]:
    """Return the first candidate value that is present and coercible."""
    for name in candidates:
        value = data.get(name)
        if value is None or value == "":
            continue
        try:
            return coerce(value)
        except (TypeError, ValueError, OverflowError):
            logger.debug("Ignoring uncoercible value %r for field %s", value, name)
    return None


def count_field(data: Mapping[str, Any], name: str, default: Optional[int] = 0) -> Optional[int]:
    """A single non-negative count from a loosely typed payload."""
    value = pick_field(data, (name,), _to_count)
    return default if value is None else value


def _apply_table(data: Mapping[str, Any], table: dict[str, tuple[str, ...]]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for canonical, candidates in table.items():
        value = pick_field(data, candidates, _COERCERS.get(canonical, _to_count))
        if value is None:
            if canonical in _OPTIONAL_FIELDS:
                fields[canonical] = None
            else:
                fields[canonical] = 0
        else:
            fields[canonical] = value
    return fields


def normalize_problem_profile(data: Mapping[str, Any]) -> ProblemSolvingProfile:
    """Map any mirror response onto the canonical problem-solving record."""
    fields = _apply_table(data, PROBLEM_PROFILE_FIELDS)
    source = data.get("source")
    fields["source"] = source if isinstance(source, str) else None
    # Error records keep their flag and message; mirror status messages are dropped.
    if data.get("error") is True:
        message = data.get("message")
        fields["error"] = True
        fields["message"] = message if isinstance(message, str) else ""
    return ProblemSolvingProfile(**fields)


def normalize_problem_snapshot(data: Mapping[str, Any]) -> ProblemSolvingStats:
    """Normalize a stored problem-solving snapshot document."""
    fields = _apply_table(data, PROBLEM_SNAPSHOT_FIELDS)
    extra = {}
    if data.get("last_updated") or data.get("lastUpdated"):
        extra["last_updated"] = data.get("last_updated") or data.get("lastUpdated")
    return ProblemSolvingStats(**fields, **extra)


def normalize_commit_snapshot(data: Mapping[str, Any]) -> CommitActivityStats:
    """Normalize a stored commit-activity snapshot document."""
    fields = _apply_table(data, COMMIT_SNAPSHOT_FIELDS)
    method = data.get("method")
    try:
        fields["method"] = StatsMethod(method) if method else StatsMethod.ESTIMATE
    except ValueError:
        fields["method"] = StatsMethod.ESTIMATE
    if data.get("last_updated") or data.get("lastUpdated"):
        fields["last_updated"] = data.get("last_updated") or data.get("lastUpdated")
    return CommitActivityStats(**fields)
