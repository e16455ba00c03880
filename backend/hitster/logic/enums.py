"""
String enum definitions for game concepts.
"""

from enum import StrEnum


class GameMode(StrEnum):
    """Rule variants. The mode fixes starting tokens and the win threshold."""

    ORIGINAL = "original"
    PRO = "pro"
    EXPERT = "expert"
    COOP = "coop"


class GameStatus(StrEnum):
    """Lifecycle status of a game; drives which actions are legal."""

    LOBBY = "lobby"
    PLAYING = "playing"
    ROUND_SUMMARY = "round_summary"
    FINISHED = "finished"
