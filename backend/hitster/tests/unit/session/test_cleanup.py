from hitster.session.cleanup import SessionCleanup
from hitster.tests.helpers.session import create_room, join_room


def _cleanup(session_manager) -> SessionCleanup:
    return SessionCleanup(session_manager, disconnect_grace_seconds=300, room_timeout_seconds=1800)


class TestStalePlayers:
    async def test_lobby_player_removed_after_grace(self, message_router, session_manager, clock):
        host, room_key, room_id = await create_room(message_router)
        player, player_id = await join_room(message_router, room_key, "Ana")
        await message_router.handle_disconnect(player)
        cleanup = _cleanup(session_manager)

        clock.advance(299)
        assert await cleanup.remove_stale_players() == 0

        clock.advance(2)
        host.clear()
        assert await cleanup.remove_stale_players() == 1

        assert await session_manager.player_repository.get_player(player_id) is None
        state = await session_manager.states.get_game_state(room_id)
        assert not state.has_player(player_id)
        assert host.last_of_type("ROOM_STATE")["payload"]["players"] == []

    async def test_mid_game_player_keeps_turn(self, message_router, session_manager, clock):
        host, room_key, room_id = await create_room(message_router)
        player, player_id = await join_room(message_router, room_key, "Ana")
        await message_router.handle_message(host, {"type": "START_ROUND", "payload": {"trackUri": "spotify:track:1"}})
        await message_router.handle_disconnect(player)

        clock.advance(301)
        assert await _cleanup(session_manager).remove_stale_players() == 1

        assert await session_manager.player_repository.get_player(player_id) is None
        state = await session_manager.states.get_game_state(room_id)
        assert state.has_player(player_id)
        view = host.last_of_type("ROOM_STATE")["payload"]["players"][0]
        assert view["connected"] is False

    async def test_connected_players_untouched(self, message_router, session_manager, clock):
        _, room_key, _ = await create_room(message_router)
        await join_room(message_router, room_key, "Ana")

        clock.advance(10_000)
        assert await _cleanup(session_manager).remove_stale_players() == 0


class TestEmptyRooms:
    async def test_old_empty_room_removed(self, message_router, session_manager, clock):
        host, _, room_id = await create_room(message_router)
        cleanup = _cleanup(session_manager)
        clock.advance(1801)

        # the host is still watching
        assert await cleanup.remove_empty_rooms() == 0

        await message_router.handle_disconnect(host)
        assert await cleanup.remove_empty_rooms() == 1
        assert await session_manager.room_repository.get_room_by_id(room_id) is None
        assert not session_manager.states.has_game_state(room_id)

    async def test_young_room_kept(self, message_router, session_manager, clock):
        host, _, _ = await create_room(message_router)
        await message_router.handle_disconnect(host)
        clock.advance(600)
        assert await _cleanup(session_manager).remove_empty_rooms() == 0

    async def test_room_with_players_kept(self, message_router, session_manager, clock):
        host, room_key, _ = await create_room(message_router)
        player, _ = await join_room(message_router, room_key, "Ana")
        await message_router.handle_disconnect(host)
        await message_router.handle_disconnect(player)
        clock.advance(1801)

        assert await _cleanup(session_manager).remove_empty_rooms() == 0

    async def test_run_once(self, message_router, session_manager, clock):
        host, room_key, room_id = await create_room(message_router)
        player, _ = await join_room(message_router, room_key, "Ana")
        await message_router.handle_disconnect(player)
        await message_router.handle_disconnect(host)
        clock.advance(1801)

        assert await _cleanup(session_manager).run_once() == (1, 1)
        assert await session_manager.room_repository.get_room_by_id(room_id) is None
