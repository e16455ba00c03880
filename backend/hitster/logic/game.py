"""
Game state transitions.

Every function takes a GameState and returns a new one, or raises a
GameRuleError subclass. None of them mutate their input or perform I/O.

State machine::

    lobby --start_round--> playing --reveal_year--> round_summary --start_round--> playing
                                          |
                                          +--(threshold reached)--> finished
"""

from hitster.logic.enums import GameMode, GameStatus
from hitster.logic.exceptions import (
    AlreadyPlacedError,
    DuplicatePlayerError,
    InvalidChallengeError,
    InvalidGameStatusError,
    InvalidSlotError,
    NoActiveRoundError,
    NoPlayersError,
    PlayerNotFoundError,
    RoundAlreadyRevealedError,
)
from hitster.logic.modes import get_starting_tokens
from hitster.logic.scoring import calculate_challenge_score, calculate_placement_score, check_win_condition
from hitster.logic.state import Card, Challenge, GameState, Placement, Player, Round
from hitster.logic.state_utils import adjust_tokens, append_round, replace_latest_round, update_player
from hitster.logic.timeline import get_player_timeline, is_correct_placement, validate_placement
from hitster.logic.tokens import spend_token


def create_game(mode: GameMode) -> GameState:
    """Create a fresh game in the lobby with no players."""
    return GameState(mode=mode, starting_tokens=get_starting_tokens(mode))


def join_player(state: GameState, player: Player) -> GameState:
    """Append a player with the mode's starting tokens and zero score."""
    if state.status != GameStatus.LOBBY:
        raise InvalidGameStatusError(f"cannot join a game in status {state.status}")
    if state.has_player(player.id):
        raise DuplicatePlayerError(f"player {player.id} already joined")
    joined = player.model_copy(update={"tokens": state.starting_tokens, "score": 0})
    return state.model_copy(update={"players": (*state.players, joined)})


def remove_player(state: GameState, player_id: str) -> GameState:
    """Remove a player by id, keeping the order of the others."""
    if not state.has_player(player_id):
        raise PlayerNotFoundError(player_id)
    if state.status != GameStatus.LOBBY:
        raise InvalidGameStatusError(f"cannot remove players from a game in status {state.status}")
    players = tuple(player for player in state.players if player.id != player_id)
    return state.model_copy(update={"players": players})


def get_current_round(state: GameState) -> Round | None:
    """The round at index current_round, or None before the first round."""
    if not state.rounds:
        return None
    return state.rounds[state.current_round]


def get_current_player_id(state: GameState) -> str | None:
    current = get_current_round(state)
    return current.current_player_id if current is not None else None


def _next_player_id(state: GameState) -> str:
    # round-robin over join order
    return state.players[len(state.rounds) % len(state.players)].id


def start_round(state: GameState, card: Card, player_id: str | None = None) -> GameState:
    """
    Open a new round with the given card.

    The acting player is picked round-robin over join order unless player_id
    is given. Only one round may be open at a time.
    """
    if state.status == GameStatus.FINISHED:
        raise InvalidGameStatusError("game is finished")
    if not state.players:
        raise NoPlayersError("cannot start a round without players")
    if state.open_round is not None:
        raise InvalidGameStatusError(f"round {state.open_round.round_number} is still open")
    if player_id is None:
        player_id = _next_player_id(state)
    elif not state.has_player(player_id):
        raise PlayerNotFoundError(player_id)

    round_ = Round(
        round_number=len(state.rounds) + 1,
        current_card=card.model_copy(update={"revealed": False, "year": None}),
        current_player_id=player_id,
    )
    new_state = append_round(state, round_)
    return new_state.model_copy(update={"current_round": len(state.rounds), "status": GameStatus.PLAYING})


def _require_open_round(state: GameState) -> Round:
    latest = state.latest_round
    if latest is None or latest.revealed:
        raise NoActiveRoundError("no round is open")
    if state.status != GameStatus.PLAYING:
        raise InvalidGameStatusError(f"game is not playing (status {state.status})")
    return latest


def place_card(state: GameState, player_id: str, slot_index: int) -> GameState:
    """
    Record a player's placement of the current card.

    Correctness is unknown until reveal; only the slot bounds are checked
    against the player's own timeline.
    """
    round_ = _require_open_round(state)
    if not state.has_player(player_id):
        raise PlayerNotFoundError(player_id)
    if round_.placement_for(player_id) is not None:
        raise AlreadyPlacedError(f"player {player_id} already placed this round")
    timeline = get_player_timeline(state, player_id)
    if not validate_placement(timeline, slot_index):
        raise InvalidSlotError(f"slot {slot_index} is outside a timeline of {len(timeline)} cards")

    placement = Placement(card=round_.current_card, player_id=player_id, slot_index=slot_index)
    return replace_latest_round(state, round_.model_copy(update={"placements": (*round_.placements, placement)}))


def challenge_placement(state: GameState, challenger_id: str, target_id: str, slot_index: int) -> GameState:
    """
    Challenge another player's placement this round.

    The challenger stakes one token immediately. The stake is settled when
    the year is revealed.
    """
    round_ = _require_open_round(state)
    if challenger_id == target_id:
        raise InvalidChallengeError("players cannot challenge themselves")
    for player_id in (challenger_id, target_id):
        if not state.has_player(player_id):
            raise PlayerNotFoundError(player_id)
    target_placement = round_.placement_for(target_id)
    if target_placement is None or target_placement.slot_index != slot_index:
        raise InvalidChallengeError(f"player {target_id} has no placement at slot {slot_index}")
    if any(c.challenger_id == challenger_id and c.target_id == target_id for c in round_.challenges):
        raise InvalidChallengeError(f"player {challenger_id} already challenged {target_id} this round")

    new_state = spend_token(state, challenger_id)
    challenge = Challenge(challenger_id=challenger_id, target_id=target_id, slot_index=slot_index)
    return replace_latest_round(new_state, round_.model_copy(update={"challenges": (*round_.challenges, challenge)}))


def _settle_challenges(
    state: GameState,
    challenges: tuple[Challenge, ...],
    placements: tuple[Placement, ...],
) -> tuple[GameState, tuple[Challenge, ...]]:
    correct_by_player = {p.player_id: bool(p.correct) for p in placements}
    settled = []
    for challenge in challenges:
        challenger_won = not correct_by_player.get(challenge.target_id, True)
        outcome = calculate_challenge_score(challenger_won)
        # the challenger's -1 was already taken as the stake
        state = adjust_tokens(state, challenge.challenger_id, outcome.challenger_delta + 1)
        state = adjust_tokens(state, challenge.target_id, outcome.target_delta)
        settled.append(challenge.model_copy(update={"challenger_won": challenger_won}))
    return state, tuple(settled)


def reveal_year(state: GameState, year: int) -> GameState:
    """
    Reveal the current card's year and score the round.

    Each placement is judged against the placing player's own timeline as it
    stood before this round. The game finishes on the first player, in turn
    order, whose score reaches the mode's threshold.
    """
    latest = state.latest_round
    if latest is None:
        raise NoActiveRoundError("no round has been started")
    if latest.revealed:
        raise RoundAlreadyRevealedError(f"round {latest.round_number} is already revealed")
    round_ = _require_open_round(state)

    card = round_.current_card.model_copy(update={"year": year, "revealed": True})
    placements = tuple(
        placement.model_copy(
            update={
                "card": card,
                "correct": is_correct_placement(
                    get_player_timeline(state, placement.player_id),
                    placement.slot_index,
                    year,
                ),
            },
        )
        for placement in round_.placements
    )

    new_state = state
    for placement in placements:
        player = new_state.get_player(placement.player_id)
        if player is None:
            continue
        score = player.score + calculate_placement_score(bool(placement.correct))
        new_state = update_player(new_state, player.id, score=score)

    new_state, challenges = _settle_challenges(new_state, round_.challenges, placements)
    revealed_round = round_.model_copy(
        update={
            "current_card": card,
            "placements": placements,
            "challenges": challenges,
            "revealed": True,
            "actual_year": year,
        },
    )
    new_state = replace_latest_round(new_state, revealed_round)

    winner = check_win_condition(new_state)
    if winner is not None:
        return new_state.model_copy(update={"status": GameStatus.FINISHED, "winner": winner})
    return new_state.model_copy(update={"status": GameStatus.ROUND_SUMMARY})
