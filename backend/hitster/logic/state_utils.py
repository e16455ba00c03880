"""
Immutable state update utilities using Pydantic model_copy.

These helpers never mutate their input. They always return a new
GameState with the requested change applied.
"""

from hitster.logic.exceptions import NoActiveRoundError, PlayerNotFoundError
from hitster.logic.state import GameState, Player, Round

_PLAYER_FIELDS = set(Player.model_fields) - {"id"}


def update_player(state: GameState, player_id: str, **updates: object) -> GameState:
    """
    Return new state with the given player's fields replaced.

    Raises:
        PlayerNotFoundError: If no player has this id
        ValueError: If update fields are not player fields

    """
    invalid_fields = set(updates) - _PLAYER_FIELDS
    if invalid_fields:
        raise ValueError(f"Invalid player fields: {invalid_fields}")
    if not state.has_player(player_id):
        raise PlayerNotFoundError(player_id)
    players = tuple(
        player.model_copy(update=updates) if player.id == player_id else player for player in state.players
    )
    return state.model_copy(update={"players": players})


def adjust_tokens(state: GameState, player_id: str, delta: int) -> GameState:
    """Return new state with delta added to the player's tokens, floored at zero."""
    player = state.get_player(player_id)
    if player is None:
        raise PlayerNotFoundError(player_id)
    return update_player(state, player_id, tokens=max(0, player.tokens + delta))


def replace_latest_round(state: GameState, round_: Round) -> GameState:
    """Return new state with the last round replaced."""
    if not state.rounds:
        raise NoActiveRoundError("no round has been started")
    return state.model_copy(update={"rounds": (*state.rounds[:-1], round_)})


def append_round(state: GameState, round_: Round) -> GameState:
    return state.model_copy(update={"rounds": (*state.rounds, round_)})
