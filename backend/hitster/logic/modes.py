"""Per-mode rule constants."""

from typing import NamedTuple

from hitster.logic.enums import GameMode


class ModeRules(NamedTuple):
    starting_tokens: int
    win_threshold: int
    requires_additional_input: bool  # pro/expert ask for artist and title on top of the placement


MODE_RULES: dict[GameMode, ModeRules] = {
    GameMode.ORIGINAL: ModeRules(starting_tokens=3, win_threshold=10, requires_additional_input=False),
    GameMode.PRO: ModeRules(starting_tokens=3, win_threshold=10, requires_additional_input=True),
    GameMode.EXPERT: ModeRules(starting_tokens=3, win_threshold=10, requires_additional_input=True),
    GameMode.COOP: ModeRules(starting_tokens=5, win_threshold=20, requires_additional_input=False),
}


def get_starting_tokens(mode: GameMode) -> int:
    return MODE_RULES[mode].starting_tokens


def get_win_threshold(mode: GameMode) -> int:
    return MODE_RULES[mode].win_threshold


def requires_additional_input(mode: GameMode) -> bool:
    return MODE_RULES[mode].requires_additional_input
