"""Room and user store interfaces plus their SQLite implementations.

The stats pipeline only talks to the ``RoomStore`` and ``UserStore``
protocols. The SQL stores share one ``Database`` and are what the MCP server
wires in; tests substitute in-memory doubles. Database errors surface as
``PersistenceFailure`` from ``Database.session``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy import delete, select

from .core.models import LinkedProfiles, ParticipantStats, Room, User
from .core.normalization import normalize_commit_snapshot, normalize_problem_snapshot
from .db import Database
from .sqlmodels import RoomMember, RoomRecord, UserRecord


class RoomStore(Protocol):
    async def get_room(self, room_id: str) -> Optional[Room]: ...

    async def list_rooms_for_user(self, user_id: str) -> list[Room]: ...

    async def list_active_rooms(self) -> list[Room]: ...

    async def save_room(self, room: Room) -> None: ...


class UserStore(Protocol):
    async def get_user(self, user_id: str) -> Optional[User]: ...

    async def save_user(self, user: User) -> None: ...


def _participant_stats(raw: Any) -> ParticipantStats:
    """Load stored stats, accepting legacy camelCase snapshot documents."""
    if isinstance(raw, ParticipantStats):
        return raw
    raw = raw or {}
    github = raw.get("github")
    leetcode = raw.get("leetcode")
    return ParticipantStats(
        github=normalize_commit_snapshot(github) if github else None,
        leetcode=normalize_problem_snapshot(leetcode) if leetcode else None,
    )


def room_from_document(document: dict) -> Room:
    participants = []
    for raw in document.get("participants") or []:
        participant = dict(raw)
        participant["stats"] = _participant_stats(raw.get("stats"))
        participants.append(participant)
    return Room.model_validate({**document, "participants": participants})


def room_to_document(room: Room) -> dict:
    return room.model_dump(mode="json")


class SqlRoomStore:
    """Rooms as JSON documents in SQLite."""

    def __init__(self, database: Database):
        self._db = database

    async def get_room(self, room_id: str) -> Optional[Room]:
        async with self._db.session("get_room") as session:
            record = await session.get(RoomRecord, room_id)
        if record is None:
            return None
        return room_from_document(record.document)

    async def list_rooms_for_user(self, user_id: str) -> list[Room]:
        query = (
            select(RoomRecord)
            .join(RoomMember, RoomMember.room_id == RoomRecord.id)
            .where(
                RoomMember.user_id == user_id,
                RoomMember.is_active.is_(True),
                RoomRecord.is_active.is_(True),
            )
            .order_by(RoomRecord.id)
        )
        return await self._select_rooms(query, "list_rooms_for_user")

    async def list_active_rooms(self) -> list[Room]:
        query = select(RoomRecord).where(RoomRecord.is_active.is_(True)).order_by(RoomRecord.id)
        return await self._select_rooms(query, "list_active_rooms")

    async def _select_rooms(self, query, operation: str) -> list[Room]:
        async with self._db.session(operation) as session:
            result = await session.execute(query)
            records = result.scalars().all()
        return [room_from_document(r.document) for r in records]

    async def save_room(self, room: Room) -> None:
        """Upsert the document and rewrite its membership rows. Last write wins."""
        async with self._db.session("save_room") as session:
            await session.merge(RoomRecord(
                id=room.id,
                name=room.name,
                is_active=room.is_active,
                document=room_to_document(room),
                updated_at=datetime.utcnow(),
            ))
            await session.execute(delete(RoomMember).where(RoomMember.room_id == room.id))
            seen = set()
            for participant in room.participants:
                if participant.user_id in seen:
                    continue
                seen.add(participant.user_id)
                session.add(RoomMember(
                    room_id=room.id,
                    user_id=participant.user_id,
                    is_active=participant.is_active,
                ))
            await session.commit()


class SqlUserStore:
    """Users and their linked usernames in SQLite."""

    def __init__(self, database: Database):
        self._db = database

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._db.session("get_user") as session:
            record = await session.get(UserRecord, user_id)
        if record is None:
            return None
        return User(
            user_id=record.user_id,
            name=record.name,
            profiles=LinkedProfiles(github=record.github_username, leetcode=record.leetcode_username),
        )

    async def save_user(self, user: User) -> None:
        async with self._db.session("save_user") as session:
            await session.merge(UserRecord(
                user_id=user.user_id,
                name=user.name,
                github_username=user.profiles.github,
                leetcode_username=user.profiles.leetcode,
                updated_at=datetime.utcnow(),
            ))
            await session.commit()
