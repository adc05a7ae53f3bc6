"""Tests for the SQLite room and user stores."""

from datetime import datetime

import pytest

from conftest import commit_stats, make_participant, run
from room_stats.core.errors import PersistenceFailure
from room_stats.core.models import LinkedProfiles, ParticipantStats, Room, StatsMethod, User
from room_stats.db import DB_FILENAME, Database
from room_stats.sqlmodels import RoomRecord
from room_stats.stores import SqlRoomStore, SqlUserStore


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def database(data_dir):
    return Database()


def _with_db(database, scenario, create=True):
    async def wrapper():
        if create:
            await database.create_schema()
        try:
            return await scenario()
        finally:
            await database.dispose()
    return run(wrapper())


def test_room_round_trip(data_dir, database):
    store = SqlRoomStore(database)
    alice = make_participant("alice", github="octocat", name="Alice")
    alice.stats = ParticipantStats(github=commit_stats(420))
    room = Room(id="r1", name="Club", participants=[alice, make_participant("bob", is_active=False)])

    async def scenario():
        await store.save_room(room)
        return await store.get_room("r1"), await store.get_room("missing")

    loaded, missing = _with_db(database, scenario)
    assert (data_dir / DB_FILENAME).exists()
    assert missing is None
    assert loaded.name == "Club"
    assert loaded.find_participant("alice").stats.github.total_commits == 420
    assert loaded.find_participant("alice").stats.github.method is StatsMethod.ACCURATE
    assert loaded.find_participant("bob") is None


def test_rooms_for_user_follow_membership(data_dir, database):
    store = SqlRoomStore(database)
    rooms = [
        Room(id="r1", participants=[make_participant("alice")]),
        Room(id="r2", participants=[make_participant("alice", is_active=False)]),
        Room(id="r3", is_active=False, participants=[make_participant("alice")]),
        Room(id="r4", participants=[make_participant("bob")]),
    ]

    async def scenario():
        for room in rooms:
            await store.save_room(room)
        # Leaving r1 removes the membership row on save.
        r1 = rooms[0].model_copy(update={"participants": []})
        before = await store.list_rooms_for_user("alice")
        await store.save_room(r1)
        after = await store.list_rooms_for_user("alice")
        active = await store.list_active_rooms()
        return before, after, active

    before, after, active = _with_db(database, scenario)
    assert [r.id for r in before] == ["r1"]
    assert after == []
    assert [r.id for r in active] == ["r1", "r2", "r4"]


def test_legacy_camel_case_documents_are_normalized(data_dir, database):
    document = {
        "id": "legacy",
        "name": "Old room",
        "participants": [{
            "user_id": "alice",
            "profiles": {"github": "octocat", "leetcode": "lc_alice"},
            "stats": {
                "github": {"totalCommits": 1030, "weeklyCommits": 2, "monthlyCommits": 6},
                "leetcode": {"easy": 4, "medium": 2, "hard": 1, "total": 7},
            },
        }],
    }

    async def scenario():
        async with database.session("seed") as session:
            session.add(RoomRecord(id="legacy", name="Old room", document=document, updated_at=datetime.utcnow()))
            await session.commit()
        return await SqlRoomStore(database).get_room("legacy")

    room = _with_db(database, scenario)
    stats = room.find_participant("alice").stats
    assert stats.github.total_commits == 1030
    assert stats.github.method is StatsMethod.ESTIMATE
    assert stats.leetcode.medium_solved == 2


def test_user_round_trip(data_dir, database):
    store = SqlUserStore(database)

    async def scenario():
        await store.save_user(User(user_id="u1", name="Ann", profiles=LinkedProfiles(github="ann")))
        await store.save_user(User(user_id="u1", name="Ann", profiles=LinkedProfiles(github="ann", leetcode="ann_lc")))
        return await store.get_user("u1"), await store.get_user("missing")

    user, missing = _with_db(database, scenario)
    assert missing is None
    assert user.profiles == LinkedProfiles(github="ann", leetcode="ann_lc")


def test_database_errors_become_persistence_failures(database):
    async def scenario():
        return await SqlRoomStore(database).get_room("r1")

    # No schema yet, so the rooms table is missing.
    with pytest.raises(PersistenceFailure) as excinfo:
        _with_db(database, scenario, create=False)
    assert excinfo.value.operation == "get_room"


def test_room_documents_are_stored_compactly(database):
    room = Room(id="r1", name="Café", participants=[make_participant("alice")])

    async def scenario():
        await SqlRoomStore(database).save_room(room)
        async with database.engine.connect() as conn:
            result = await conn.exec_driver_sql("SELECT document FROM rooms WHERE id = 'r1'")
            return result.scalar_one()

    raw = _with_db(database, scenario)
    assert '"name":"Café"' in raw
