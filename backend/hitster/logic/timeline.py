"""
Per-player timelines.

A timeline is never stored. It is derived from the placements a player made
in revealed rounds, ordered by release year, so the rounds stay the only
source of truth.
"""

from collections.abc import Sequence

from hitster.logic.state import GameState, Placement


def _year(placement: Placement) -> int:
    # placements in revealed rounds always carry the revealed year
    return placement.card.year if placement.card.year is not None else 0


def get_player_timeline(state: GameState, player_id: str) -> list[Placement]:
    """Return the player's placements from revealed rounds in chronological order.

    The sort is stable, so cards sharing a year keep the order of the rounds
    they were revealed in.
    """
    placements = [
        placement
        for round_ in state.rounds
        if round_.revealed
        for placement in round_.placements
        if placement.player_id == player_id
    ]
    return sorted(placements, key=_year)


def validate_placement(timeline: Sequence[Placement], slot_index: int) -> bool:
    """Check that slot_index is an insertion point into the timeline."""
    if not timeline:
        return slot_index == 0
    return 0 <= slot_index <= len(timeline)


def is_correct_placement(timeline: Sequence[Placement], slot_index: int, year: int) -> bool:
    """Check whether a card of the given year belongs at slot_index.

    The year must not be earlier than the predecessor's and not later than
    the successor's. The first card of an empty timeline is always correct.
    """
    if not timeline:
        return True
    if slot_index > 0 and year < _year(timeline[slot_index - 1]):
        return False
    return not (slot_index < len(timeline) and year > _year(timeline[slot_index]))
