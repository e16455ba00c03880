"""Score and token deltas for placements and challenges."""

from typing import NamedTuple

from hitster.logic.enums import GameMode
from hitster.logic.modes import get_win_threshold
from hitster.logic.state import GameState, Player


class ChallengeOutcome(NamedTuple):
    challenger_delta: int
    target_delta: int


def calculate_placement_score(correct: bool) -> int:  # noqa: FBT001
    return 1 if correct else 0


def calculate_challenge_score(challenger_won: bool) -> ChallengeOutcome:  # noqa: FBT001
    """Token deltas for a settled challenge.

    A winning challenger takes a token from the target; a losing challenger
    gives one to the target.
    """
    if challenger_won:
        return ChallengeOutcome(challenger_delta=1, target_delta=-1)
    return ChallengeOutcome(challenger_delta=-1, target_delta=1)


def has_reached_threshold(player: Player, mode: GameMode) -> bool:
    return player.score >= get_win_threshold(mode)


def check_win_condition(state: GameState) -> str | None:
    """Return the id of the first player, in turn order, at or above the threshold."""
    for player in state.players:
        if has_reached_threshold(player, state.mode):
            return player.id
    return None
