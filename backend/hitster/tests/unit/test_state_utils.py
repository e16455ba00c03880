import pytest
from pydantic import ValidationError

from hitster.logic.exceptions import NoActiveRoundError, PlayerNotFoundError
from hitster.logic.game import start_round
from hitster.logic.state import Card, Round
from hitster.logic.state_utils import adjust_tokens, append_round, replace_latest_round, update_player
from hitster.tests.helpers.game import build_game


class TestUpdatePlayer:
    def test_updates_only_target_player(self):
        state = build_game("alice", "bob")
        new_state = update_player(state, "bob", score=4)

        assert new_state.get_player("bob").score == 4
        assert new_state.get_player("alice").score == 0
        assert state.get_player("bob").score == 0

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValueError, match="Invalid player fields"):
            update_player(build_game("alice"), "alice", points=3)

    def test_id_is_not_updatable(self):
        with pytest.raises(ValueError, match="Invalid player fields"):
            update_player(build_game("alice"), "alice", id="mallory")

    def test_unknown_player(self):
        with pytest.raises(PlayerNotFoundError):
            update_player(build_game("alice"), "ghost", score=1)


class TestAdjustTokens:
    def test_adds_delta(self):
        assert adjust_tokens(build_game("alice"), "alice", 2).get_player("alice").tokens == 5

    def test_floors_at_zero(self):
        assert adjust_tokens(build_game("alice"), "alice", -10).get_player("alice").tokens == 0


class TestRounds:
    def test_replace_requires_a_round(self):
        round_ = Round(round_number=1, current_card=Card(track_uri="t1"), current_player_id="alice")
        with pytest.raises(NoActiveRoundError):
            replace_latest_round(build_game("alice"), round_)

    def test_replace_latest_only(self):
        state = start_round(build_game("alice"), Card(track_uri="t1"))
        first = state.rounds[0]
        second = first.model_copy(update={"round_number": 2})
        state = append_round(state, second)

        replaced = replace_latest_round(state, second.model_copy(update={"actual_year": 1999}))
        assert replaced.rounds[0] == first
        assert replaced.rounds[1].actual_year == 1999


class TestFrozenModels:
    def test_state_is_immutable(self):
        state = build_game("alice")
        with pytest.raises(ValidationError):
            state.status = "playing"

    def test_player_is_immutable(self):
        player = build_game("alice").players[0]
        with pytest.raises(ValidationError):
            player.score = 5

    def test_state_json_round_trip(self):
        state = start_round(build_game("alice", "bob"), Card(track_uri="t1"))
        assert type(state).model_validate_json(state.model_dump_json()) == state
