"""Typed domain exceptions for game rule violations.

Every rule violation raised by the engine is a subclass of GameRuleError,
so the action handlers can catch one type and convert it into a typed
error reply for the originating connection.
"""


class GameRuleError(Exception):
    """Base exception for game rule violations."""


class InvalidGameStatusError(GameRuleError):
    """Action is not legal in the game's current status."""


class NoActiveRoundError(GameRuleError):
    """There is no open (unrevealed) round to act on."""


class RoundAlreadyRevealedError(GameRuleError):
    """The current round has already been revealed."""


class NoPlayersError(GameRuleError):
    """A round cannot start without players."""


class PlayerNotFoundError(GameRuleError):
    """Player id is not part of the game."""

    def __init__(self, player_id: str) -> None:
        self.player_id = player_id
        super().__init__(f"player {player_id} not found")


class DuplicatePlayerError(GameRuleError):
    """Player id is already part of the game."""


class AlreadyPlacedError(GameRuleError):
    """Player already placed a card this round."""


class InvalidSlotError(GameRuleError):
    """Slot index is outside the player's timeline."""


class InvalidChallengeError(GameRuleError):
    """Challenge target, slot, or challenger is not valid."""


class InsufficientTokensError(GameRuleError):
    """Player has no tokens left to spend."""
