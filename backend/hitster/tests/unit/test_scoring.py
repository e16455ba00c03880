import pytest

from hitster.logic.enums import GameMode
from hitster.logic.exceptions import InsufficientTokensError, PlayerNotFoundError
from hitster.logic.modes import MODE_RULES, get_starting_tokens, get_win_threshold, requires_additional_input
from hitster.logic.scoring import (
    calculate_challenge_score,
    calculate_placement_score,
    check_win_condition,
    has_reached_threshold,
)
from hitster.logic.state import Player
from hitster.logic.state_utils import update_player
from hitster.logic.tokens import award_token, get_token_count, has_tokens, spend_token
from hitster.tests.helpers.game import build_game


class TestModes:
    def test_every_mode_has_rules(self):
        assert set(MODE_RULES) == set(GameMode)

    @pytest.mark.parametrize(
        ("mode", "tokens", "threshold"),
        [
            (GameMode.ORIGINAL, 3, 10),
            (GameMode.PRO, 3, 10),
            (GameMode.EXPERT, 3, 10),
            (GameMode.COOP, 5, 20),
        ],
    )
    def test_mode_constants(self, mode, tokens, threshold):
        assert get_starting_tokens(mode) == tokens
        assert get_win_threshold(mode) == threshold

    def test_additional_input_modes(self):
        assert requires_additional_input(GameMode.PRO) is True
        assert requires_additional_input(GameMode.EXPERT) is True
        assert requires_additional_input(GameMode.ORIGINAL) is False
        assert requires_additional_input(GameMode.COOP) is False


class TestScoring:
    def test_placement_score(self):
        assert calculate_placement_score(True) == 1
        assert calculate_placement_score(False) == 0

    def test_challenge_score_is_zero_sum(self):
        for challenger_won in (True, False):
            outcome = calculate_challenge_score(challenger_won)
            assert outcome.challenger_delta + outcome.target_delta == 0

    def test_challenge_winner_takes_token(self):
        outcome = calculate_challenge_score(True)
        assert outcome.challenger_delta == 1
        assert outcome.target_delta == -1

    def test_threshold(self):
        assert has_reached_threshold(Player(id="a", name="A", avatar="x", score=10), GameMode.ORIGINAL)
        assert not has_reached_threshold(Player(id="a", name="A", avatar="x", score=19), GameMode.COOP)

    def test_no_winner(self):
        assert check_win_condition(build_game("alice", "bob")) is None

    def test_first_player_in_turn_order_wins(self):
        state = update_player(build_game("alice", "bob"), "bob", score=12)
        state = update_player(state, "alice", score=10)
        assert check_win_condition(state) == "alice"


class TestTokens:
    def test_token_count(self):
        state = build_game("alice")
        assert get_token_count(state, "alice") == 3
        assert has_tokens(state, "alice") is True

    def test_unknown_player(self):
        with pytest.raises(PlayerNotFoundError):
            get_token_count(build_game("alice"), "ghost")

    def test_spend_and_award(self):
        state = spend_token(build_game("alice"), "alice")
        assert get_token_count(state, "alice") == 2
        state = award_token(state, "alice")
        assert get_token_count(state, "alice") == 3

    def test_spend_at_zero(self):
        state = update_player(build_game("alice"), "alice", tokens=0)
        assert has_tokens(state, "alice") is False
        with pytest.raises(InsufficientTokensError):
            spend_token(state, "alice")
