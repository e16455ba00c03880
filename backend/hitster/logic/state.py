"""
Immutable game state models.

All models are frozen; transitions build new values with ``model_copy``.
Nested sequences are tuples, so an old state can never observe changes
made while building a new one.
"""

from pydantic import BaseModel

from hitster.logic.enums import GameMode, GameStatus


class Card(BaseModel, frozen=True):
    """The card in play: a track whose release year is hidden until reveal."""

    track_uri: str
    revealed: bool = False
    year: int | None = None


class Player(BaseModel, frozen=True):
    id: str  # stable across reconnects
    name: str
    avatar: str
    tokens: int = 0
    score: int = 0


class Placement(BaseModel, frozen=True):
    """A player's placement of the round's card into their own timeline."""

    card: Card
    player_id: str
    slot_index: int
    correct: bool | None = None  # set at reveal


class Challenge(BaseModel, frozen=True):
    challenger_id: str
    target_id: str
    slot_index: int
    challenger_won: bool | None = None  # set at reveal


class Round(BaseModel, frozen=True):
    round_number: int  # 1-based, for display
    current_card: Card
    current_player_id: str
    placements: tuple[Placement, ...] = ()
    challenges: tuple[Challenge, ...] = ()
    revealed: bool = False
    actual_year: int | None = None

    def placement_for(self, player_id: str) -> Placement | None:
        for placement in self.placements:
            if placement.player_id == player_id:
                return placement
        return None


class GameState(BaseModel, frozen=True):
    """
    Authoritative state of one room's game.

    ``players`` keeps join order, which is also the turn order.
    ``rounds`` is append-only; only the last round is ever replaced.
    """

    mode: GameMode
    starting_tokens: int
    status: GameStatus = GameStatus.LOBBY
    players: tuple[Player, ...] = ()
    current_round: int = 0
    rounds: tuple[Round, ...] = ()
    winner: str | None = None

    def get_player(self, player_id: str) -> Player | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def has_player(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None

    @property
    def latest_round(self) -> Round | None:
        return self.rounds[-1] if self.rounds else None

    @property
    def open_round(self) -> Round | None:
        """The unrevealed round, if one is in progress."""
        latest = self.latest_round
        if latest is None or latest.revealed:
            return None
        return latest
