import asyncio
from typing import List

from pydantic import ValidationError

from backend import ConnectionRegistry, RoomRegistry, RoomSummary
from broadcaster import RoomBroadcaster
from constants import MAX_DISPLAY_NAME_LENGTH, MAX_ROOM_MEMBERS
from errors import CoordinatorError, InvalidRequest
from logging_config import get_logger
from presence import PresenceManager, room_summaries
from relay import SignalingRelay
from schemas.events import BroadcastKind, InboundEvent, OutboundEvent, SignalKind, build_event, inbound_adapter

logger = get_logger(__name__)


class Coordinator:
    """Owns the registries and routes every inbound session message.

    One instance is built at startup and shared by all sessions. The lock
    serializes registry mutations; relay and broadcast only read.
    """

    def __init__(self, max_room_members: int = MAX_ROOM_MEMBERS, max_name_length: int = MAX_DISPLAY_NAME_LENGTH):
        self.connections = ConnectionRegistry()
        self.rooms = RoomRegistry()
        self.lock = asyncio.Lock()
        self.presence = PresenceManager(
            self.connections,
            self.rooms,
            lock=self.lock,
            max_members=max_room_members,
            max_name_length=max_name_length,
        )
        self.relay = SignalingRelay(self.connections)
        self.broadcaster = RoomBroadcaster(self.connections, self.rooms)
        self._handlers = {
            InboundEvent.CREATE_ROOM: self._on_create_room,
            InboundEvent.JOIN_ROOM: self._on_join_room,
            InboundEvent.LEAVE_ROOM: self._on_leave_room,
            InboundEvent.OFFER: self._on_signal,
            InboundEvent.ANSWER: self._on_signal,
            InboundEvent.ICE_CANDIDATE: self._on_signal,
            InboundEvent.SEND_MESSAGE: self._on_send_message,
            InboundEvent.SEND_FILE: self._on_send_file,
            InboundEvent.TYPING_START: self._on_typing,
            InboundEvent.TYPING_STOP: self._on_typing,
            InboundEvent.TOGGLE_MEDIA: self._on_toggle_media,
            InboundEvent.GET_ROOMS: self._on_get_rooms,
        }

    async def connect(self, transport) -> str:
        return await self.presence.connect(transport)

    async def disconnect(self, session_id: str):
        await self.presence.disconnect(session_id)

    def list_rooms(self) -> List[RoomSummary]:
        return self.rooms.list_non_empty_rooms()

    async def dispatch(self, session_id: str, raw: str):
        """Parse one raw message from a session and handle it.

        Errors meant for the client are sent back to that session only.
        """
        try:
            message = inbound_adapter.validate_json(raw)
        except ValidationError as e:
            logger.debug(f"Invalid message from {session_id}: {e.errors(include_url=False)}")
            self.send_error(session_id, InvalidRequest("Malformed or unknown message"))
            return

        try:
            await self.handle(session_id, message)
        except CoordinatorError as e:
            logger.info(f"Request {message.type} from {session_id} failed: {e.code}: {e.message}")
            self.send_error(session_id, e)

    async def handle(self, session_id: str, message):
        event = InboundEvent(message.type)
        logger.debug(f"Handling {event.value} from {session_id}")
        await self._handlers[event](session_id, message)

    def send_error(self, session_id: str, error: CoordinatorError):
        self.connections.deliver(session_id, build_event(OutboundEvent.ERROR, code=error.code, message=error.message))

    async def _on_create_room(self, session_id, message):
        await self.presence.create_room(session_id, message.display_name)

    async def _on_join_room(self, session_id, message):
        await self.presence.join_room(session_id, message.room_id, message.display_name)

    async def _on_leave_room(self, session_id, message):
        await self.presence.leave_room(session_id)

    async def _on_signal(self, session_id, message):
        self.relay.relay(SignalKind(message.type), session_id, message.target, message.data)

    async def _on_send_message(self, session_id, message):
        self.broadcaster.broadcast(BroadcastKind.CHAT_MESSAGE, session_id, {"text": message.text})

    async def _on_send_file(self, session_id, message):
        self.broadcaster.broadcast(BroadcastKind.FILE_SHARED, session_id, {"file": message.file})

    async def _on_typing(self, session_id, message):
        if message.type == InboundEvent.TYPING_START.value:
            self.broadcaster.broadcast(BroadcastKind.TYPING_START, session_id)
        else:
            self.broadcaster.broadcast(BroadcastKind.TYPING_STOP, session_id)

    async def _on_toggle_media(self, session_id, message):
        self.broadcaster.broadcast(
            BroadcastKind.MEDIA_TOGGLE,
            session_id,
            {"kind": message.kind, "state": message.state},
        )

    async def _on_get_rooms(self, session_id, message):
        rooms = [summary.model_dump(mode="json") for summary in room_summaries(self.list_rooms())]
        self.connections.deliver(session_id, build_event(OutboundEvent.ROOMS_LIST, rooms=rooms))
