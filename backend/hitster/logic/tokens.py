"""Token economy: spending and awarding challenge tokens."""

from hitster.logic.exceptions import InsufficientTokensError, PlayerNotFoundError
from hitster.logic.state import GameState
from hitster.logic.state_utils import update_player


def get_token_count(state: GameState, player_id: str) -> int:
    player = state.get_player(player_id)
    if player is None:
        raise PlayerNotFoundError(player_id)
    return player.tokens


def has_tokens(state: GameState, player_id: str) -> bool:
    return get_token_count(state, player_id) > 0


def spend_token(state: GameState, player_id: str) -> GameState:
    """Return new state with one token taken from the player.

    Raises InsufficientTokensError when the balance is already zero or below;
    the input state is left as it was.
    """
    tokens = get_token_count(state, player_id)
    if tokens <= 0:
        raise InsufficientTokensError(f"player {player_id} has no tokens")
    return update_player(state, player_id, tokens=tokens - 1)


def award_token(state: GameState, player_id: str) -> GameState:
    return update_player(state, player_id, tokens=get_token_count(state, player_id) + 1)
