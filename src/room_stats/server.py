"""Room Stats MCP Server.

FastMCP server exposing coding-practice stats lookups, room leaderboards and
profile sync as tools.
Run: room-stats-mcp
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from .core.models import ProfileUpdate
from .db import Database
from .scheduler import StatsScheduler
from .service import StatsService
from .stores import SqlRoomStore, SqlUserStore

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True)
REFRESH = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=True)

database = Database()
service = StatsService(SqlRoomStore(database), SqlUserStore(database))
scheduler = StatsScheduler(service)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize database and start the leaderboard refresh scheduler."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await database.create_schema()
    await scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()
        await database.dispose()


mcp = FastMCP(
    "Room Stats",
    instructions="Coding-practice leaderboards for rooms of users. Pulls GitHub commit activity and LeetCode solved counts, scores them and ranks room participants.",
    lifespan=lifespan,
)


# ─── Tool 1: GitHub stats ────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def github_stats(username: str) -> dict:
    """Commit activity for a GitHub user: total, this week and this month.

    Uses the commit search API when it can, otherwise an estimate from
    repository count, account age and recent pushes.

    Args:
        username: GitHub login.
    """
    result = await service.get_commit_stats(username)
    stats = result["stats"]
    summary = (
        f"{username}: {stats['total_commits']} commits ({result['method']}), "
        f"{stats['weekly_commits']} this week, {stats['monthly_commits']} this month"
    )
    if result["fallback_reason"]:
        summary += f". Fallback used: {result['fallback_reason']}"
    return {"username": username, **result, "summary": summary}


# ─── Tool 2: LeetCode stats ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def leetcode_stats(username: str) -> dict:
    """Solved problems by difficulty for a LeetCode user, with a difficulty-weighted score.

    Args:
        username: LeetCode username.
    """
    result = await service.get_problem_stats(username)
    profile = result["profile"]
    if profile["error"]:
        summary = profile["message"]
    else:
        summary = (
            f"{username}: {profile['total_solved']} solved "
            f"({profile['easy_solved']} easy, {profile['medium_solved']} medium, {profile['hard_solved']} hard)"
        )
    return {"username": username, **result, "summary": summary}


@mcp.tool(annotations=READ_ONLY)
async def leetcode_difficulty_breakdown(username: str) -> dict:
    """Solved vs. available problems per difficulty for a LeetCode user.

    Args:
        username: LeetCode username.
    """
    breakdown = await service.leetcode.difficulty_breakdown(username)
    return {"username": username, "breakdown": breakdown}


# ─── Tool 3: Room refreshes ──────────────────────────────────────────────────


@mcp.tool(annotations=REFRESH)
async def refresh_participant_stats(
    room_id: str,
    user_id: str,
    github_username: Optional[str] = None,
    leetcode_username: Optional[str] = None,
) -> dict:
    """Refresh one participant's stats inside a room.

    Args:
        room_id: Room identifier.
        user_id: Participant's user identifier.
        github_username: Optional new GitHub login for this room.
        leetcode_username: Optional new LeetCode username for this room.
    """
    profiles = None
    if github_username is not None or leetcode_username is not None:
        profiles = ProfileUpdate(github=github_username, leetcode=leetcode_username)
    result = await service.refresh_participant(room_id, user_id, profiles=profiles)
    return {
        "success": True,
        "message": "Stats updated successfully",
        **result.model_dump(mode="json"),
    }


@mcp.tool(annotations=REFRESH)
async def refresh_room_stats(room_id: str) -> dict:
    """Refresh every active participant of a room.

    Args:
        room_id: Room identifier.
    """
    report = await service.refresh_room(room_id)
    return {
        "success": True,
        "message": f"Leaderboard refreshed for {report.updated_count} participants",
        **report.model_dump(mode="json"),
    }


# ─── Tool 4: Leaderboard ─────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def room_leaderboard(room_id: str) -> dict:
    """Ranked leaderboard for a room, weighted by the room's settings.

    Args:
        room_id: Room identifier.
    """
    leaderboard = await service.compute_leaderboard(room_id)
    top = leaderboard.entries[0] if leaderboard.entries else None
    return {
        "success": True,
        **leaderboard.model_dump(mode="json"),
        "summary": f"{len(leaderboard.entries)} participants ranked"
        + (f", leader: {top.name or top.user_id} with {top.total_score} points" if top else ""),
    }


# ─── Tool 5: Linked profiles ─────────────────────────────────────────────────


@mcp.tool(annotations=REFRESH)
async def update_linked_profiles(
    user_id: str,
    github_username: Optional[str] = None,
    leetcode_username: Optional[str] = None,
) -> dict:
    """Change a user's linked GitHub/LeetCode usernames and resync every room they are in.

    Args:
        user_id: User identifier.
        github_username: New GitHub login. Empty string unlinks, omit to keep.
        leetcode_username: New LeetCode username. Empty string unlinks, omit to keep.
    """
    update = ProfileUpdate(github=github_username, leetcode=leetcode_username)
    user, report = await service.update_user_profiles(user_id, update)
    return {
        "success": True,
        "user": user.model_dump(mode="json"),
        "rooms_updated": report.updated_count if report else 0,
        "room_failures": report.failures if report else {},
        "warnings": report.warnings if report else [],
    }


@mcp.tool(annotations=REFRESH)
async def refresh_user_stats(user_id: str) -> dict:
    """Refresh a user's stats in every room they take part in.

    Args:
        user_id: User identifier.
    """
    report = await service.refresh_user(user_id)
    return {
        "success": True,
        "message": "Stats refreshed successfully",
        "rooms_updated": report.updated_count,
        "room_failures": report.failures,
        "warnings": report.warnings,
    }


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
