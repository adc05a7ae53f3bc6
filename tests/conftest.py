"""
Shared fixtures and test doubles for the stats pipeline tests.
"""
from __future__ import annotations

import asyncio
from typing import Optional

import httpx
import pytest

from room_stats.core.errors import PersistenceFailure
from room_stats.core.models import (
    CommitActivityStats,
    LinkedProfiles,
    Participant,
    ProblemSolvingProfile,
    Provider,
    ProviderResult,
    Room,
    StatsMethod,
    User,
)


def run(coro):
    return asyncio.run(coro)


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


def make_participant(user_id: str, github: str = "", leetcode: str = "", **kwargs) -> Participant:
    return Participant(
        user_id=user_id,
        name=kwargs.pop("name", user_id.title()),
        profiles=LinkedProfiles(github=github, leetcode=leetcode),
        **kwargs,
    )


class InMemoryRoomStore:
    """Room store double. Hands out copies so unsaved mutations are lost, like a real store."""

    def __init__(self, rooms=(), fail_saves_for=()):
        self.rooms: dict[str, Room] = {r.id: r.model_copy(deep=True) for r in rooms}
        self.fail_saves_for = set(fail_saves_for)
        self.saves: list[str] = []

    async def get_room(self, room_id: str) -> Optional[Room]:
        room = self.rooms.get(room_id)
        return room.model_copy(deep=True) if room else None

    async def list_rooms_for_user(self, user_id: str) -> list[Room]:
        return [
            r.model_copy(deep=True)
            for r in self.rooms.values()
            if r.is_active and r.find_participant(user_id) is not None
        ]

    async def list_active_rooms(self) -> list[Room]:
        return [r.model_copy(deep=True) for r in self.rooms.values() if r.is_active]

    async def save_room(self, room: Room) -> None:
        if room.id in self.fail_saves_for:
            raise PersistenceFailure("save_room", f"simulated write conflict on {room.id}")
        self.saves.append(room.id)
        self.rooms[room.id] = room.model_copy(deep=True)


class InMemoryUserStore:
    def __init__(self, users=()):
        self.users: dict[str, User] = {u.user_id: u.model_copy(deep=True) for u in users}

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def save_user(self, user: User) -> None:
        self.users[user.user_id] = user.model_copy(deep=True)


class StubGitHub:
    """Commit-activity adapter double keyed by username."""

    def __init__(self, stats=None, missing=(), failing=(), raising=()):
        self.stats: dict[str, CommitActivityStats] = stats or {}
        self.missing = set(missing)
        self.failing = set(failing)
        self.raising = set(raising)
        self.calls: list[str] = []

    async def user_exists(self, username: str) -> bool:
        return username not in self.missing

    async def fetch_stats(self, username: str) -> ProviderResult:
        self.calls.append(username)
        if username in self.raising:
            raise RuntimeError("adapter exploded")
        if username in self.failing or username not in self.stats:
            return ProviderResult(
                provider=Provider.GITHUB,
                ok=False,
                reasons=["accurate: Search API failed: 503", "estimate: Profile API failed: 503"],
            )
        return ProviderResult(provider=Provider.GITHUB, ok=True, stats=self.stats[username], strategy="accurate")


class StubLeetCode:
    def __init__(self, profiles=None, raising=(), raise_on_call: Optional[int] = None):
        self.profiles: dict[str, ProblemSolvingProfile] = profiles or {}
        self.raising = set(raising)
        self.raise_on_call = raise_on_call
        self.calls: list[str] = []

    async def get_user_stats(self, username: str) -> ProblemSolvingProfile:
        self.calls.append(username)
        if username in self.raising or self.raise_on_call == len(self.calls):
            raise RuntimeError("mirror client exploded")
        if username not in self.profiles:
            return ProblemSolvingProfile(error=True, message="All LeetCode APIs failed. Errors: a: User not found")
        return self.profiles[username]


def commit_stats(total=100, weekly=10, monthly=40, method=StatsMethod.ACCURATE) -> CommitActivityStats:
    return CommitActivityStats(
        total_commits=total,
        weekly_commits=weekly,
        monthly_commits=monthly,
        public_repos=12,
        method=method,
    )


def problem_profile(easy=10, medium=5, hard=2) -> ProblemSolvingProfile:
    return ProblemSolvingProfile(
        total_solved=easy + medium + hard,
        easy_solved=easy,
        medium_solved=medium,
        hard_solved=hard,
        acceptance_rate=55.5,
    )


@pytest.fixture
def github_stub():
    return StubGitHub(stats={"octocat": commit_stats()})


@pytest.fixture
def leetcode_stub():
    return StubLeetCode(profiles={"lc_alice": problem_profile(), "lc_new": problem_profile(40, 20, 5)})
