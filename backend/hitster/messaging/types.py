from enum import StrEnum
from typing import Annotated, Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from hitster.logic.enums import GameMode, GameStatus

_ROOM_KEY_FIELD = Field(pattern=r"^\d{6}$")
_ID_FIELD = Field(min_length=1, max_length=100)
_MAX_PLAYLIST_TRACKS = 2000


class ClientMessageType(StrEnum):
    CREATE_ROOM = "CREATE_ROOM"
    JOIN_ROOM = "JOIN_ROOM"
    LEAVE = "LEAVE"
    REQUEST_ROOM_STATE = "REQUEST_ROOM_STATE"
    START_ROUND = "START_ROUND"
    PLACE = "PLACE"
    CHALLENGE = "CHALLENGE"
    REVEAL = "REVEAL"
    REGISTER_DEVICE = "REGISTER_DEVICE"
    PING = "PING"


class ServerMessageType(StrEnum):
    ROOM_CREATED = "ROOM_CREATED"
    JOINED = "JOINED"
    ROOM_STATE = "ROOM_STATE"
    START_SONG = "START_SONG"
    ROUND_SUMMARY = "ROUND_SUMMARY"
    DEVICE_REGISTERED = "DEVICE_REGISTERED"
    ERROR = "ERROR"
    PONG = "PONG"


class ErrorCode(StrEnum):
    INVALID_JSON = "INVALID_JSON"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    NOT_IN_ROOM = "NOT_IN_ROOM"
    UNHANDLED_MESSAGE = "UNHANDLED_MESSAGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_CREATE_FAILED = "ROOM_CREATE_FAILED"
    JOIN_ROOM_FAILED = "JOIN_ROOM_FAILED"
    LEAVE_FAILED = "LEAVE_FAILED"
    NO_GAME_STATE = "NO_GAME_STATE"
    INVALID_GAME_STATUS = "INVALID_GAME_STATUS"
    NO_PLAYERS = "NO_PLAYERS"
    NO_TRACKS_REMAINING = "NO_TRACKS_REMAINING"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    CHALLENGER_NOT_FOUND = "CHALLENGER_NOT_FOUND"
    START_ROUND_FAILED = "START_ROUND_FAILED"
    PLACE_FAILED = "PLACE_FAILED"
    CHALLENGE_FAILED = "CHALLENGE_FAILED"
    REVEAL_FAILED = "REVEAL_FAILED"


# Message types accepted from connections that are not yet in a room.
ROOMLESS_MESSAGE_TYPES = frozenset(
    {
        ClientMessageType.CREATE_ROOM,
        ClientMessageType.JOIN_ROOM,
        ClientMessageType.REQUEST_ROOM_STATE,
        ClientMessageType.PING,
    },
)


class WireModel(BaseModel):
    """Base for wire payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# --- client payloads ---


class PlaylistTrack(WireModel):
    """Track metadata as supplied by the playback provider."""

    track_uri: str = Field(min_length=1, max_length=200)
    name: str = Field(default="", max_length=300)
    artist: str = Field(default="", max_length=300)
    release_year: int | None = None
    album_art: str | None = Field(default=None, max_length=1000)


class CreateRoomPayload(WireModel):
    game_mode: GameMode = GameMode.ORIGINAL
    playlist_id: str | None = Field(default=None, max_length=200)
    tracks: list[PlaylistTrack] | None = Field(default=None, max_length=_MAX_PLAYLIST_TRACKS)


class JoinRoomPayload(WireModel):
    room_key: str = _ROOM_KEY_FIELD
    name: str = Field(min_length=1, max_length=50)
    avatar: str = Field(min_length=1, max_length=100)


class LeavePayload(WireModel):
    player_id: str = _ID_FIELD


class RequestRoomStatePayload(WireModel):
    room_key: str = _ROOM_KEY_FIELD


class StartRoundPayload(WireModel):
    # omitted: the next track is taken from the room's shuffled queue
    track_uri: str | None = Field(default=None, min_length=1, max_length=200)


class PlacePayload(WireModel):
    player_id: str = _ID_FIELD
    slot_index: int = Field(ge=0, strict=True)


class ChallengePayload(WireModel):
    player_id: str = _ID_FIELD
    target_player_id: str = _ID_FIELD
    slot_index: int = Field(ge=0, strict=True)


class RevealPayload(WireModel):
    year: int = Field(ge=1900, le=2100, strict=True)


class RegisterDevicePayload(WireModel):
    device_id: str = Field(min_length=1, max_length=200)


class EmptyPayload(WireModel):
    pass


# --- client envelopes ---


class CreateRoomMessage(WireModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    payload: CreateRoomPayload = Field(default_factory=CreateRoomPayload)


class JoinRoomMessage(WireModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    payload: JoinRoomPayload


class LeaveMessage(WireModel):
    type: Literal[ClientMessageType.LEAVE] = ClientMessageType.LEAVE
    payload: LeavePayload


class RequestRoomStateMessage(WireModel):
    type: Literal[ClientMessageType.REQUEST_ROOM_STATE] = ClientMessageType.REQUEST_ROOM_STATE
    payload: RequestRoomStatePayload


class StartRoundMessage(WireModel):
    type: Literal[ClientMessageType.START_ROUND] = ClientMessageType.START_ROUND
    payload: StartRoundPayload = Field(default_factory=StartRoundPayload)


class PlaceMessage(WireModel):
    type: Literal[ClientMessageType.PLACE] = ClientMessageType.PLACE
    payload: PlacePayload


class ChallengeMessage(WireModel):
    type: Literal[ClientMessageType.CHALLENGE] = ClientMessageType.CHALLENGE
    payload: ChallengePayload


class RevealMessage(WireModel):
    type: Literal[ClientMessageType.REVEAL] = ClientMessageType.REVEAL
    payload: RevealPayload


class RegisterDeviceMessage(WireModel):
    type: Literal[ClientMessageType.REGISTER_DEVICE] = ClientMessageType.REGISTER_DEVICE
    payload: RegisterDevicePayload


class PingMessage(WireModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


ClientMessage = Annotated[
    CreateRoomMessage
    | JoinRoomMessage
    | LeaveMessage
    | RequestRoomStateMessage
    | StartRoundMessage
    | PlaceMessage
    | ChallengeMessage
    | RevealMessage
    | RegisterDeviceMessage
    | PingMessage,
    Field(discriminator="type"),
]

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(data: Any) -> ClientMessage:  # noqa: ANN401
    """Validate a decoded frame into its typed message. Raises pydantic.ValidationError."""
    return _client_message_adapter.validate_python(data)


# --- server payloads ---


class TimelineCardView(WireModel):
    track_uri: str
    year: int | None


class PlayerView(WireModel):
    id: str
    name: str
    avatar: str
    connected: bool
    score: int
    tokens: int
    has_placed: bool = False
    timeline: list[TimelineCardView] = Field(default_factory=list)


class GameStateView(WireModel):
    mode: GameMode
    status: GameStatus
    current_round: int
    round_number: int | None = None
    current_track: str | None = None
    current_player_id: str | None = None
    winner: str | None = None


class RoomCreatedPayload(WireModel):
    room_key: str
    room_id: str


class JoinedPayload(WireModel):
    player_id: str
    room_key: str
    players: list[PlayerView]


class RoomStatePayload(WireModel):
    room_key: str
    players: list[PlayerView]
    game_state: GameStateView
    host_device_id: str | None = None


class StartSongPayload(WireModel):
    track_uri: str
    position_ms: int = 0
    device_id: str | None = None


class RoundSummaryEntry(WireModel):
    year: int | None
    track_uri: str
    player_id: str
    correct: bool | None = None


class RoundSummaryPayload(WireModel):
    timeline: list[RoundSummaryEntry]
    scores: dict[str, int]
    tokens: dict[str, int] = Field(default_factory=dict)
    winner: str | None = None


class DeviceRegisteredPayload(WireModel):
    device_id: str
    success: bool


class ErrorPayload(WireModel):
    code: ErrorCode
    message: str
    details: list[str] | None = None


# --- server envelopes ---


class ServerMessage(WireModel):
    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RoomCreatedMessage(ServerMessage):
    type: Literal[ServerMessageType.ROOM_CREATED] = ServerMessageType.ROOM_CREATED
    payload: RoomCreatedPayload


class JoinedMessage(ServerMessage):
    type: Literal[ServerMessageType.JOINED] = ServerMessageType.JOINED
    payload: JoinedPayload


class RoomStateMessage(ServerMessage):
    type: Literal[ServerMessageType.ROOM_STATE] = ServerMessageType.ROOM_STATE
    payload: RoomStatePayload


class StartSongMessage(ServerMessage):
    type: Literal[ServerMessageType.START_SONG] = ServerMessageType.START_SONG
    payload: StartSongPayload


class RoundSummaryMessage(ServerMessage):
    type: Literal[ServerMessageType.ROUND_SUMMARY] = ServerMessageType.ROUND_SUMMARY
    payload: RoundSummaryPayload


class DeviceRegisteredMessage(ServerMessage):
    type: Literal[ServerMessageType.DEVICE_REGISTERED] = ServerMessageType.DEVICE_REGISTERED
    payload: DeviceRegisteredPayload


class PongMessage(ServerMessage):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class ErrorMessage(ServerMessage):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    payload: ErrorPayload

    @classmethod
    def create(cls, code: ErrorCode, message: str, details: list[str] | None = None) -> Self:
        return cls(payload=ErrorPayload(code=code, message=message, details=details))
