"""Handlers for game actions: start round, place, challenge, reveal.

Each handler resolves the sender's room, loads its game state, checks the
action's preconditions, runs the engine transition, then commits and
broadcasts under the room lock. Engine failures become an error reply to
the sender only; nothing is committed or broadcast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from hitster.logic.enums import GameStatus
from hitster.logic.exceptions import GameRuleError
from hitster.logic.game import challenge_placement, place_card, reveal_year, start_round
from hitster.logic.state import Card
from hitster.messaging.types import (
    ErrorCode,
    RoundSummaryEntry,
    RoundSummaryMessage,
    RoundSummaryPayload,
    StartSongMessage,
    StartSongPayload,
)

if TYPE_CHECKING:
    from hitster.logic.state import GameState
    from hitster.messaging.protocol import ConnectionProtocol
    from hitster.messaging.types import ChallengeMessage, PlaceMessage, RevealMessage, StartRoundMessage
    from hitster.session.manager import SessionManager

logger = structlog.get_logger()

_ROUND_STARTABLE = frozenset({GameStatus.LOBBY, GameStatus.ROUND_SUMMARY})


async def _load_state(session: SessionManager, room_id: str, connection_id: str) -> GameState | None:
    """Load the room's state, replying NO_GAME_STATE to the sender when there is none."""
    state = await session.states.get_game_state(room_id)
    if state is None:
        await session.rooms.send_error(connection_id, ErrorCode.NO_GAME_STATE, "Room has no game state")
    return state


async def handle_start_round(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: StartRoundMessage,
) -> None:
    """Start the next round and tell the room to play its track.

    Without an explicit track the next one is taken from the room's
    shuffled queue; it is only consumed once the round actually starts.
    """
    connection_id = connection.connection_id
    room_id = session.rooms.get_room_for_connection(connection_id)
    if room_id is None:
        return

    async with session.rooms.lock(room_id):
        state = await _load_state(session, room_id, connection_id)
        if state is None:
            return
        if state.status not in _ROUND_STARTABLE:
            await session.rooms.send_error(
                connection_id,
                ErrorCode.INVALID_GAME_STATUS,
                f"Cannot start a round while {state.status}",
            )
            return
        if not state.players:
            await session.rooms.send_error(connection_id, ErrorCode.NO_PLAYERS, "No players in the room")
            return

        track_uri = message.payload.track_uri
        from_queue = track_uri is None
        if track_uri is None:
            track = session.states.get_next_track(room_id)
            if track is None:
                await session.rooms.send_error(connection_id, ErrorCode.NO_TRACKS_REMAINING, "No tracks remaining")
                return
            track_uri = track.track_uri

        try:
            new_state = start_round(state, Card(track_uri=track_uri))
        except GameRuleError as e:
            await session.rooms.send_error(connection_id, ErrorCode.START_ROUND_FAILED, str(e))
            return

        if from_queue:
            session.states.consume_track(room_id)
        await session.states.commit(room_id, new_state)
        logger.info("round started", round_number=len(new_state.rounds), track_uri=track_uri)

        start_song = StartSongMessage(
            payload=StartSongPayload(
                track_uri=track_uri,
                position_ms=0,
                device_id=session.rooms.get_host_device(room_id),
            ),
        )
        await session.rooms.broadcast_to_room(room_id, start_song.to_wire())
        await session.broadcast_room_state(room_id)


async def handle_place(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: PlaceMessage,
) -> None:
    connection_id = connection.connection_id
    room_id = session.rooms.get_room_for_connection(connection_id)
    if room_id is None:
        return
    player_id = message.payload.player_id

    async with session.rooms.lock(room_id):
        state = await _load_state(session, room_id, connection_id)
        if state is None:
            return
        if not state.has_player(player_id):
            await session.rooms.send_error(connection_id, ErrorCode.PLAYER_NOT_FOUND, f"Player {player_id} not found")
            return
        try:
            new_state = place_card(state, player_id, message.payload.slot_index)
        except GameRuleError as e:
            await session.rooms.send_error(connection_id, ErrorCode.PLACE_FAILED, str(e))
            return

        await session.states.commit(room_id, new_state)
        logger.info("card placed", player_id=player_id, slot_index=message.payload.slot_index)
        await session.broadcast_room_state(room_id)


async def handle_challenge(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: ChallengeMessage,
) -> None:
    connection_id = connection.connection_id
    room_id = session.rooms.get_room_for_connection(connection_id)
    if room_id is None:
        return
    payload = message.payload

    async with session.rooms.lock(room_id):
        state = await _load_state(session, room_id, connection_id)
        if state is None:
            return
        if not state.has_player(payload.player_id):
            await session.rooms.send_error(
                connection_id,
                ErrorCode.CHALLENGER_NOT_FOUND,
                f"Challenger {payload.player_id} not found",
            )
            return
        try:
            new_state = challenge_placement(state, payload.player_id, payload.target_player_id, payload.slot_index)
        except GameRuleError as e:
            await session.rooms.send_error(connection_id, ErrorCode.CHALLENGE_FAILED, str(e))
            return

        await session.states.commit(room_id, new_state)
        logger.info(
            "placement challenged",
            challenger_id=payload.player_id,
            target_id=payload.target_player_id,
            slot_index=payload.slot_index,
        )
        await session.broadcast_room_state(room_id)


def _round_summary(state: GameState) -> RoundSummaryMessage:
    round_ = state.rounds[-1]
    return RoundSummaryMessage(
        payload=RoundSummaryPayload(
            timeline=[
                RoundSummaryEntry(
                    year=placement.card.year,
                    track_uri=placement.card.track_uri,
                    player_id=placement.player_id,
                    correct=placement.correct,
                )
                for placement in round_.placements
            ],
            scores={player.id: player.score for player in state.players},
            tokens={player.id: player.tokens for player in state.players},
            winner=state.winner,
        ),
    )


async def handle_reveal(
    session: SessionManager,
    connection: ConnectionProtocol,
    message: RevealMessage,
) -> None:
    connection_id = connection.connection_id
    room_id = session.rooms.get_room_for_connection(connection_id)
    if room_id is None:
        return

    async with session.rooms.lock(room_id):
        state = await _load_state(session, room_id, connection_id)
        if state is None:
            return
        try:
            new_state = reveal_year(state, message.payload.year)
        except GameRuleError as e:
            await session.rooms.send_error(connection_id, ErrorCode.REVEAL_FAILED, str(e))
            return

        await session.states.commit(room_id, new_state)
        logger.info("year revealed", year=message.payload.year, status=new_state.status, winner=new_state.winner)
        await session.rooms.broadcast_to_room(room_id, _round_summary(new_state).to_wire())
        await session.broadcast_room_state(room_id)
