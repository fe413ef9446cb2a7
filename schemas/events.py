from enum import Enum
from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class InboundEvent(str, Enum):
    CREATE_ROOM = "create-room"
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    SEND_MESSAGE = "send-message"
    SEND_FILE = "send-file"
    TYPING_START = "typing-start"
    TYPING_STOP = "typing-stop"
    TOGGLE_MEDIA = "toggle-media"
    GET_ROOMS = "get-rooms"


class OutboundEvent(str, Enum):
    CONNECTED = "connected"
    ROOM_CREATED = "room-created"
    ROOM_JOINED = "room-joined"
    ROOM_LEFT = "room-left"
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    NEW_MESSAGE = "new-message"
    NEW_FILE = "new-file"
    USER_TYPING = "user-typing"
    USER_STOP_TYPING = "user-stop-typing"
    USER_MEDIA_TOGGLE = "user-media-toggle"
    ROOMS_LIST = "rooms-list"
    ERROR = "error"


class SignalKind(str, Enum):
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"


class BroadcastKind(str, Enum):
    CHAT_MESSAGE = "chat-message"
    FILE_SHARED = "file-shared"
    TYPING_START = "typing-start"
    TYPING_STOP = "typing-stop"
    MEDIA_TOGGLE = "media-toggle"


def build_event(event: OutboundEvent, **fields) -> dict:
    """Build an outbound wire message: {"type": <event>, **fields}."""
    return {"type": event.value, **fields}


class _NamedRequest(BaseModel):
    display_name: str


class CreateRoomMessage(_NamedRequest):
    type: Literal["create-room"]


class JoinRoomMessage(_NamedRequest):
    type: Literal["join-room"]
    room_id: str


class LeaveRoomMessage(BaseModel):
    type: Literal["leave-room"]


class SignalMessage(BaseModel):
    type: Literal["offer", "answer", "ice-candidate"]
    target: str
    # Opaque to the server; only the two endpoints interpret it
    data: Any = None


class SendMessageMessage(BaseModel):
    type: Literal["send-message"]
    text: str


class SendFileMessage(BaseModel):
    type: Literal["send-file"]
    file: Dict[str, Any]


class TypingMessage(BaseModel):
    type: Literal["typing-start", "typing-stop"]


class ToggleMediaMessage(BaseModel):
    type: Literal["toggle-media"]
    kind: str
    state: bool


class GetRoomsMessage(BaseModel):
    type: Literal["get-rooms"]


InboundMessage = Annotated[
    Union[
        CreateRoomMessage,
        JoinRoomMessage,
        LeaveRoomMessage,
        SignalMessage,
        SendMessageMessage,
        SendFileMessage,
        TypingMessage,
        ToggleMediaMessage,
        GetRoomsMessage,
    ],
    Field(discriminator="type"),
]

inbound_adapter = TypeAdapter(InboundMessage)
