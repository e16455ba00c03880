from hitster.logic.game import place_card, start_round
from hitster.logic.state import Card
from hitster.logic.timeline import get_player_timeline, is_correct_placement, validate_placement
from hitster.tests.helpers.game import build_game, play_round, revealed_placement


class TestPlayerTimeline:
    def test_sorted_by_year(self):
        state = build_game("alice")
        state = play_round(state, "t1", 1990, {"alice": 0})
        state = play_round(state, "t2", 1970, {"alice": 0})
        state = play_round(state, "t3", 1980, {"alice": 1})

        years = [p.card.year for p in get_player_timeline(state, "alice")]
        assert years == [1970, 1980, 1990]

    def test_wrong_placements_stay_in_timeline(self):
        state = play_round(build_game("alice"), "t1", 1990, {"alice": 0})
        state = play_round(state, "t2", 1980, {"alice": 1})

        timeline = get_player_timeline(state, "alice")
        assert [p.correct for p in timeline] == [False, True]

    def test_same_year_keeps_reveal_order(self):
        state = play_round(build_game("alice"), "first", 1985, {"alice": 0})
        state = play_round(state, "second", 1985, {"alice": 1})

        assert [p.card.track_uri for p in get_player_timeline(state, "alice")] == ["first", "second"]

    def test_open_round_not_included(self):
        state = play_round(build_game("alice"), "t1", 1990, {"alice": 0})
        state = place_card(start_round(state, Card(track_uri="t2")), "alice", 0)

        assert len(get_player_timeline(state, "alice")) == 1

    def test_only_own_placements(self):
        state = play_round(build_game("alice", "bob"), "t1", 1990, {"alice": 0})
        assert get_player_timeline(state, "bob") == []


class TestValidatePlacement:
    def test_empty_timeline(self):
        assert validate_placement([], 0) is True
        assert validate_placement([], 1) is False

    def test_bounds(self):
        timeline = [revealed_placement(1980), revealed_placement(1990)]
        assert validate_placement(timeline, 0) is True
        assert validate_placement(timeline, 2) is True
        assert validate_placement(timeline, 3) is False
        assert validate_placement(timeline, -1) is False


class TestIsCorrectPlacement:
    timeline = [revealed_placement(1980), revealed_placement(1990), revealed_placement(2000)]

    def test_empty_timeline_always_correct(self):
        assert is_correct_placement([], 0, 1955) is True

    def test_between_neighbours(self):
        assert is_correct_placement(self.timeline, 1, 1985) is True
        assert is_correct_placement(self.timeline, 2, 1985) is False
        assert is_correct_placement(self.timeline, 0, 1985) is False

    def test_ends(self):
        assert is_correct_placement(self.timeline, 0, 1960) is True
        assert is_correct_placement(self.timeline, 3, 2010) is True
        assert is_correct_placement(self.timeline, 3, 1995) is False

    def test_equal_years_fit_either_side(self):
        assert is_correct_placement(self.timeline, 1, 1990) is True
        assert is_correct_placement(self.timeline, 2, 1990) is True
        assert is_correct_placement(self.timeline, 1, 1980) is True
