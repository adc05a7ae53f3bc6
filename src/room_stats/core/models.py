"""Pydantic data models shared by every layer.

Provider adapters, the scoring and ranking functions, the sync propagator and
the MCP tools all exchange these models. Nothing here performs I/O.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Provider(str, Enum):
    """External coding platforms that supply statistics."""

    GITHUB = "github"
    LEETCODE = "leetcode"


class StatsMethod(str, Enum):
    """How a commit-activity snapshot was obtained."""

    ACCURATE = "accurate"
    ESTIMATE = "estimate"
    SEARCH_API = "search_api"


class CommitActivityStats(BaseModel):
    """Normalized commit-activity snapshot."""

    total_commits: int = Field(0, ge=0, description="May be an estimate, see method")
    weekly_commits: int = Field(0, ge=0)
    monthly_commits: int = Field(0, ge=0)
    public_repos: Optional[int] = Field(None, ge=0)
    method: StatsMethod = StatsMethod.ESTIMATE
    last_updated: datetime = Field(default_factory=utcnow)


class ProblemSolvingStats(BaseModel):
    """Normalized problem-solving snapshot as stored on a participant."""

    easy_solved: int = Field(0, ge=0)
    medium_solved: int = Field(0, ge=0)
    hard_solved: int = Field(0, ge=0)
    total: int = Field(0, ge=0)
    acceptance_rate: Optional[float] = None
    last_updated: datetime = Field(default_factory=utcnow)


StatsSnapshot = Union[CommitActivityStats, ProblemSolvingStats]


class ProblemSolvingProfile(BaseModel):
    """Canonical record built from any problem-solving mirror response."""

    total_solved: int = 0
    total_questions: int = 0
    easy_solved: int = 0
    total_easy: int = 0
    medium_solved: int = 0
    total_medium: int = 0
    hard_solved: int = 0
    total_hard: int = 0
    acceptance_rate: Optional[float] = None
    ranking: Optional[int] = None
    contribution_points: int = 0
    reputation: int = 0
    source: Optional[str] = None
    error: bool = False
    message: str = ""

    def to_snapshot(self) -> ProblemSolvingStats:
        return ProblemSolvingStats(
            easy_solved=self.easy_solved,
            medium_solved=self.medium_solved,
            hard_solved=self.hard_solved,
            total=self.total_solved,
            acceptance_rate=self.acceptance_rate,
        )


FetchedStats = Union[CommitActivityStats, ProblemSolvingStats, ProblemSolvingProfile]


class StrategyOutcome(BaseModel):
    """Result of one fetch strategy: supported with stats, or unsupported with a reason."""

    supported: bool
    stats: Optional[FetchedStats] = None
    reason: str = ""

    @classmethod
    def ok(cls, stats: FetchedStats) -> "StrategyOutcome":
        return cls(supported=True, stats=stats)

    @classmethod
    def unsupported(cls, reason: str) -> "StrategyOutcome":
        return cls(supported=False, reason=reason)


class ProviderResult(BaseModel):
    """Outcome of a whole fallback chain for one provider."""

    provider: Provider
    ok: bool
    stats: Optional[FetchedStats] = None
    strategy: Optional[str] = Field(None, description="Name of the strategy that succeeded")
    reasons: list[str] = Field(default_factory=list, description="Failure reasons of attempted strategies")

    @property
    def failure_message(self) -> str:
        return "; ".join(self.reasons)


class LinkedProfiles(BaseModel):
    """Provider usernames linked by a user. Empty string means unlinked."""

    github: str = ""
    leetcode: str = ""

    def username(self, provider: Provider) -> str:
        return getattr(self, provider.value) or ""

    def linked(self) -> list[Provider]:
        return [p for p in Provider if self.username(p)]


class ProfileUpdate(BaseModel):
    """Changed usernames. None leaves a provider untouched, "" unlinks it."""

    github: Optional[str] = None
    leetcode: Optional[str] = None

    def changed(self) -> list[Provider]:
        return [p for p in Provider if getattr(self, p.value) is not None]

    def apply(self, profiles: LinkedProfiles) -> LinkedProfiles:
        updates = {p.value: getattr(self, p.value).strip() for p in self.changed()}
        return profiles.model_copy(update=updates)


class ParticipantStats(BaseModel):
    github: Optional[CommitActivityStats] = None
    leetcode: Optional[ProblemSolvingStats] = None

    def get(self, provider: Provider) -> Optional[StatsSnapshot]:
        return getattr(self, provider.value)


class Participant(BaseModel):
    """A user's membership record inside one room."""

    user_id: str
    name: str = ""
    picture: str = ""
    role: str = "participant"
    is_active: bool = True
    joined_at: datetime = Field(default_factory=utcnow)
    profiles: LinkedProfiles = Field(default_factory=LinkedProfiles)
    stats: ParticipantStats = Field(default_factory=ParticipantStats)
    stats_last_updated: Optional[datetime] = None

    def link_profiles(self, update: ProfileUpdate) -> list[Provider]:
        """Apply changed usernames. Returns the providers whose username changed."""
        previous = self.profiles
        self.profiles = update.apply(previous)
        changed = [p for p in Provider if self.profiles.username(p) != previous.username(p)]
        if changed:
            # The old snapshot belonged to a different account.
            self.stats = self.stats.model_copy(update={p.value: None for p in changed})
        return changed

    def apply_stats(self, updates: dict[Provider, StatsSnapshot], refreshed_at: Optional[datetime] = None) -> None:
        """Replace whole snapshots and drop snapshots of unlinked providers."""
        values = {p.value: self.stats.get(p) for p in Provider}
        for provider, snapshot in updates.items():
            values[provider.value] = snapshot
        for provider in Provider:
            if not self.profiles.username(provider):
                values[provider.value] = None
        self.stats = ParticipantStats(**values)
        self.stats_last_updated = refreshed_at or utcnow()


class LeaderboardSettings(BaseModel):
    """Per-room leaderboard configuration. Weights need not sum to 1."""

    enabled: bool = True
    auto_update: bool = True
    weight_leetcode: float = Field(0.6, ge=0.0, le=1.0)
    weight_github: float = Field(0.4, ge=0.0, le=1.0)

    def weight(self, provider: Provider) -> float:
        return getattr(self, f"weight_{provider.value}")


class Room(BaseModel):
    id: str
    name: str = ""
    is_active: bool = True
    leaderboard: LeaderboardSettings = Field(default_factory=LeaderboardSettings)
    participants: list[Participant] = Field(default_factory=list)
    last_activity: datetime = Field(default_factory=utcnow)

    def find_participant(self, user_id: str, active_only: bool = True) -> Optional[Participant]:
        for participant in self.participants:
            if participant.user_id != user_id:
                continue
            if active_only and not participant.is_active:
                continue
            return participant
        return None


class User(BaseModel):
    user_id: str
    name: str = ""
    profiles: LinkedProfiles = Field(default_factory=LinkedProfiles)


class LeaderboardEntry(BaseModel):
    """Derived leaderboard row. Never persisted."""

    user_id: str
    name: str
    picture: str = ""
    role: str = "participant"
    profiles: LinkedProfiles
    stats: ParticipantStats
    total_score: int = Field(ge=0)
    rank: int = Field(ge=1)
    last_updated: Optional[datetime] = None


class Leaderboard(BaseModel):
    room_id: str
    entries: list[LeaderboardEntry]
    settings: LeaderboardSettings


class ParticipantRefresh(BaseModel):
    """Result of refreshing one participant inside one room."""

    updates: dict[Provider, StatsSnapshot] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    participant: Participant


class RoomRefreshReport(BaseModel):
    room_id: str
    updated_count: int = 0
    warnings: list[str] = Field(default_factory=list)


class RoomSyncResult(BaseModel):
    """Per-room outcome of a profile sync."""

    room_id: str
    ok: bool
    refreshed: list[Provider] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    error: Optional[str] = None


class SyncReport(BaseModel):
    user_id: str
    results: list[RoomSyncResult] = Field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failures(self) -> dict[str, str]:
        return {r.room_id: r.error or "" for r in self.results if not r.ok}

    @property
    def warnings(self) -> list[str]:
        return [w for r in self.results for w in r.warnings]
