import asyncio
from typing import List, Optional

from backend import ConnectionRegistry, Room, RoomRegistry, RoomSummary
from constants import MAX_DISPLAY_NAME_LENGTH, MAX_ROOM_MEMBERS
from errors import InvalidRequest, RoomFull, RoomNotFound
from logging_config import get_logger
from schemas.events import OutboundEvent, build_event
from schemas.rooms import ParticipantInfo, RoomSummaryResponse

logger = get_logger(__name__)


def member_list(room: Room) -> List[dict]:
    return [
        ParticipantInfo(
            session_id=p.session_id,
            display_name=p.display_name,
            joined_at=p.joined_at,
        ).model_dump(mode="json")
        for p in room.participants()
    ]


def room_summaries(summaries: List[RoomSummary]) -> List[RoomSummaryResponse]:
    return [
        RoomSummaryResponse(room_id=s.room_id, member_count=s.member_count, created_at=s.created_at)
        for s in summaries
    ]


class PresenceManager:
    """Join, leave and disconnect transitions.

    All registry mutations happen while holding ``lock``. Notifications are
    enqueued on the recipients' transports before the lock is released, so a
    joiner's later messages can never overtake its own join announcements.
    """

    def __init__(
        self,
        connections: ConnectionRegistry,
        rooms: RoomRegistry,
        lock: Optional[asyncio.Lock] = None,
        max_members: int = MAX_ROOM_MEMBERS,
        max_name_length: int = MAX_DISPLAY_NAME_LENGTH,
    ):
        self.connections = connections
        self.rooms = rooms
        self.lock = lock or asyncio.Lock()
        self.max_members = max_members
        self.max_name_length = max_name_length

    def _clean_display_name(self, display_name) -> str:
        if not isinstance(display_name, str) or not display_name.strip():
            raise InvalidRequest("Display name must not be empty")
        display_name = display_name.strip()
        if self.max_name_length and len(display_name) > self.max_name_length:
            raise InvalidRequest(f"Display name is longer than {self.max_name_length} characters")
        return display_name

    def _require_unjoined(self, session_id: str):
        if session_id not in self.connections:
            raise InvalidRequest(f"Session {session_id} is not connected")
        current = self.connections.lookup_room(session_id)
        if current is not None:
            raise InvalidRequest(f"Already in room {current}; leave it first")

    async def connect(self, transport) -> str:
        async with self.lock:
            session_id = self.connections.register(transport)
        self.connections.deliver(session_id, build_event(OutboundEvent.CONNECTED, session_id=session_id))
        logger.info(f"Session {session_id} connected")
        return session_id

    async def create_room(self, session_id: str, display_name: str) -> Room:
        display_name = self._clean_display_name(display_name)
        async with self.lock:
            self._require_unjoined(session_id)
            room_id = self.rooms.create_room()
            self.rooms.add_member(room_id, session_id, display_name)
            self.connections.bind_room(session_id, room_id)
            room = self.rooms.get_room(room_id)
            self.connections.deliver(
                session_id,
                build_event(OutboundEvent.ROOM_CREATED, room_id=room_id, users=member_list(room)),
            )
        logger.info(f"Room {room_id} created by {display_name} ({session_id})")
        return room

    async def join_room(self, session_id: str, room_id: str, display_name: str) -> Room:
        display_name = self._clean_display_name(display_name)
        async with self.lock:
            self._require_unjoined(session_id)
            room = self.rooms.get_room(room_id)
            if room is None:
                logger.info(f"Join rejected for {session_id}: room {room_id} not found")
                raise RoomNotFound(f"Room {room_id} not found")
            if self.max_members and room.member_count >= self.max_members:
                logger.info(f"Join rejected for {session_id}: room {room_id} is full ({room.member_count}/{self.max_members})")
                raise RoomFull(f"Room {room_id} is full")

            self.rooms.add_member(room_id, session_id, display_name)
            self.connections.bind_room(session_id, room_id)
            users = member_list(room)

            self.connections.deliver(session_id, build_event(OutboundEvent.ROOM_JOINED, room_id=room_id, users=users))
            notification = build_event(
                OutboundEvent.USER_JOINED,
                session_id=session_id,
                display_name=display_name,
                users=users,
            )
            for other_id in room.members:
                if other_id != session_id:
                    self.connections.deliver(other_id, notification)
        logger.info(f"{display_name} ({session_id}) joined room {room_id} (members: {len(users)})")
        return room

    def _remove_from_room(self, session_id: str) -> Optional[str]:
        """Drop the session's membership and notify the rest of the room. Caller holds the lock."""
        room_id = self.connections.lookup_room(session_id)
        if room_id is None:
            return None
        participant, _ = self.rooms.remove_member(room_id, session_id)
        self.connections.unbind_room(session_id)
        room = self.rooms.get_room(room_id)
        if room is None:
            return room_id

        notification = build_event(
            OutboundEvent.USER_LEFT,
            session_id=session_id,
            display_name=participant.display_name if participant else None,
            users=member_list(room),
        )
        for other_id in room.members:
            self.connections.deliver(other_id, notification)
        return room_id

    async def leave_room(self, session_id: str) -> str:
        async with self.lock:
            room_id = self._remove_from_room(session_id)
            if room_id is None:
                raise InvalidRequest("Not in a room")
            self.connections.deliver(session_id, build_event(OutboundEvent.ROOM_LEFT, room_id=room_id))
        logger.info(f"Session {session_id} left room {room_id}")
        return room_id

    async def disconnect(self, session_id: str) -> Optional[str]:
        """Release everything held by the session. Safe to call more than once."""
        async with self.lock:
            room_id = self._remove_from_room(session_id)
            self.connections.unregister(session_id)
        if room_id:
            logger.info(f"Session {session_id} disconnected from room {room_id}")
        else:
            logger.info(f"Session {session_id} disconnected")
        return room_id
