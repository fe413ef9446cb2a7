import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from errors import RoomNotFound, TargetUnreachable
from logging_config import get_logger

logger = get_logger(__name__)


class Transport(Protocol):
    """Outbound side of a live session.

    deliver() must not block: it hands the message to the transport's own
    buffer and returns False when the message could not be accepted.
    """

    def deliver(self, message: dict) -> bool:
        ...


@dataclass
class SessionRecord:
    session_id: str
    transport: Transport
    connected_at: datetime = field(default_factory=datetime.now)
    room_id: Optional[str] = None


@dataclass
class Participant:
    session_id: str
    display_name: str
    room_id: str
    joined_at: datetime = field(default_factory=datetime.now)


@dataclass
class Room:
    room_id: str
    created_at: datetime = field(default_factory=datetime.now)
    members: Dict[str, Participant] = field(default_factory=dict)

    @property
    def member_count(self) -> int:
        return len(self.members)

    def participants(self) -> List[Participant]:
        return list(self.members.values())


@dataclass(frozen=True)
class RoomSummary:
    room_id: str
    member_count: int
    created_at: datetime


class ConnectionRegistry:
    """Live sessions keyed by session id, plus the session -> room reverse index."""

    def __init__(self):
        self._sessions: Dict[str, SessionRecord] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def register(self, transport: Transport) -> str:
        session_id = uuid.uuid4().hex
        while session_id in self._sessions:
            session_id = uuid.uuid4().hex
        self._sessions[session_id] = SessionRecord(session_id=session_id, transport=transport)
        logger.debug(f"Registered session {session_id} (live sessions: {len(self._sessions)})")
        return session_id

    def get(self, session_id: str) -> Optional[SessionRecord]:
        return self._sessions.get(session_id)

    def lookup_room(self, session_id: str) -> Optional[str]:
        record = self._sessions.get(session_id)
        return record.room_id if record else None

    def bind_room(self, session_id: str, room_id: str):
        record = self._sessions.get(session_id)
        if record is None:
            raise TargetUnreachable(f"Session {session_id} is not connected")
        record.room_id = room_id
        logger.debug(f"Bound session {session_id} to room {room_id}")

    def unbind_room(self, session_id: str):
        record = self._sessions.get(session_id)
        if record is not None:
            record.room_id = None

    def unregister(self, session_id: str) -> Optional[SessionRecord]:
        record = self._sessions.pop(session_id, None)
        if record is None:
            logger.debug(f"Unregister for unknown session {session_id} ignored")
        else:
            logger.debug(f"Unregistered session {session_id} (live sessions: {len(self._sessions)})")
        return record

    def transport_for(self, session_id: str) -> Transport:
        record = self._sessions.get(session_id)
        if record is None:
            raise TargetUnreachable(f"Session {session_id} is not connected")
        return record.transport

    def deliver(self, session_id: str, message: dict) -> bool:
        """Hand a message to a session's transport. Unreachable targets are dropped."""
        try:
            transport = self.transport_for(session_id)
        except TargetUnreachable:
            logger.debug(f"Dropped {message.get('type')} for disconnected session {session_id}")
            return False
        return transport.deliver(message)


class RoomRegistry:
    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def create_room(self) -> str:
        room_id = uuid.uuid4().hex
        while room_id in self._rooms:
            room_id = uuid.uuid4().hex
        self._rooms[room_id] = Room(room_id=room_id)
        logger.info(f"Created room {room_id}")
        return room_id

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def add_member(self, room_id: str, session_id: str, display_name: str) -> Participant:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(f"Room {room_id} not found")
        participant = Participant(session_id=session_id, display_name=display_name, room_id=room_id)
        room.members[session_id] = participant
        logger.debug(f"Added {session_id} ({display_name}) to room {room_id} (members: {room.member_count})")
        return participant

    def remove_member(self, room_id: str, session_id: str) -> Tuple[Optional[Participant], bool]:
        """Remove a member; returns (removed participant, whether the room was deleted)."""
        room = self._rooms.get(room_id)
        if room is None:
            return None, False
        participant = room.members.pop(session_id, None)
        if room.members:
            logger.debug(f"Removed {session_id} from room {room_id} (members: {room.member_count})")
            return participant, False
        del self._rooms[room_id]
        logger.info(f"Room {room_id} is empty, deleted")
        return participant, True

    def list_non_empty_rooms(self) -> List[RoomSummary]:
        return [
            RoomSummary(room_id=room.room_id, member_count=room.member_count, created_at=room.created_at)
            for room in self._rooms.values()
            if room.members
        ]
