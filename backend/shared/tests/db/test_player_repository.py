"""Tests for SqlitePlayerRepository."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from shared.dal.models import PlayerRecord, RoomRecord
from shared.db.player_repository import SqlitePlayerRepository
from shared.db.room_repository import SqliteRoomRepository

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


def _player(player_id: str = "p1", name: str = "Ana", avatar: str = "fox", **fields) -> PlayerRecord:
    defaults = {"room_id": "r1", "socket_id": f"sock-{player_id}", "created_at": T0, "last_seen": T0}
    return PlayerRecord(id=player_id, name=name, avatar=avatar, **{**defaults, **fields})


@pytest.fixture
async def repo(db) -> SqlitePlayerRepository:
    rooms = SqliteRoomRepository(db)
    await rooms.create_room(RoomRecord(id="r1", room_key="111111", game_mode="original", created_at=T0))
    await rooms.create_room(RoomRecord(id="r2", room_key="222222", game_mode="original", created_at=T0))
    return SqlitePlayerRepository(db)


class TestCreateAndRead:
    async def test_create_and_get(self, repo: SqlitePlayerRepository) -> None:
        player = _player()
        await repo.create_player(player)

        assert await repo.get_player("p1") == player

    async def test_unknown(self, repo: SqlitePlayerRepository) -> None:
        assert await repo.get_player("nope") is None

    async def test_duplicate_id(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player())
        with pytest.raises(ValueError, match="already exists"):
            await repo.create_player(_player(socket_id="other"))

    async def test_socket_bound_once(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player())
        with pytest.raises(ValueError, match="already bound"):
            await repo.create_player(_player("p2", socket_id="sock-p1"))

    async def test_unknown_room(self, repo: SqlitePlayerRepository) -> None:
        with pytest.raises(ValueError, match="does not exist"):
            await repo.create_player(_player(room_id="nowhere"))

    async def test_identity_lookup_is_per_room(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player("p1", room_id="r1"))
        await repo.create_player(_player("p2", room_id="r2"))

        assert (await repo.get_player_by_identity("r2", "Ana", "fox")).id == "p2"
        assert await repo.get_player_by_identity("r1", "Ana", "owl") is None

    async def test_players_in_room_in_join_order(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player("late", created_at=T0 + timedelta(seconds=5)))
        await repo.create_player(_player("early", created_at=T0))
        await repo.create_player(_player("elsewhere", room_id="r2"))

        assert [p.id for p in await repo.get_players_in_room("r1")] == ["early", "late"]


class TestPresence:
    async def test_mark_disconnected_releases_socket(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player())
        await repo.mark_disconnected("p1", T0 + timedelta(minutes=1))

        player = await repo.get_player("p1")
        assert player.connected is False
        assert player.socket_id is None
        assert player.last_seen == T0 + timedelta(minutes=1)

    async def test_mark_reconnected_takes_socket_over(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player("p1"))
        await repo.create_player(_player("p2"))
        await repo.mark_disconnected("p1", T0)

        await repo.mark_reconnected("p1", "sock-p2", T0 + timedelta(minutes=2))

        p1 = await repo.get_player("p1")
        assert p1.connected is True
        assert p1.socket_id == "sock-p2"
        assert (await repo.get_player("p2")).socket_id is None

    async def test_disconnected_players_older_than(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player("gone"))
        await repo.create_player(_player("recent"))
        await repo.create_player(_player("online"))
        await repo.mark_disconnected("gone", T0)
        await repo.mark_disconnected("recent", T0 + timedelta(minutes=10))

        stale = await repo.get_disconnected_players("r1", T0 + timedelta(minutes=5))

        assert [p.id for p in stale] == ["gone"]

    async def test_delete(self, repo: SqlitePlayerRepository) -> None:
        await repo.create_player(_player())
        await repo.delete_player("p1")
        assert await repo.get_player("p1") is None
