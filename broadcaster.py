from datetime import datetime

from backend import ConnectionRegistry, RoomRegistry
from logging_config import get_logger
from schemas.events import BroadcastKind, OutboundEvent, build_event

logger = get_logger(__name__)

OUTBOUND_FOR_KIND = {
    BroadcastKind.CHAT_MESSAGE: OutboundEvent.NEW_MESSAGE,
    BroadcastKind.FILE_SHARED: OutboundEvent.NEW_FILE,
    BroadcastKind.TYPING_START: OutboundEvent.USER_TYPING,
    BroadcastKind.TYPING_STOP: OutboundEvent.USER_STOP_TYPING,
    BroadcastKind.MEDIA_TOGGLE: OutboundEvent.USER_MEDIA_TOGGLE,
}

TIMESTAMPED_KINDS = {BroadcastKind.CHAT_MESSAGE, BroadcastKind.FILE_SHARED}


class RoomBroadcaster:
    """Fans room events out to every member except the sender."""

    def __init__(self, connections: ConnectionRegistry, rooms: RoomRegistry):
        self.connections = connections
        self.rooms = rooms

    def broadcast(self, kind: BroadcastKind, sender_session_id: str, payload: dict = None) -> int:
        """Returns the number of recipients the message was handed to."""
        kind = BroadcastKind(kind)
        room_id = self.connections.lookup_room(sender_session_id)
        room = self.rooms.get_room(room_id) if room_id else None
        if room is None:
            logger.debug(f"Ignored {kind.value} from {sender_session_id}: not in a room")
            return 0

        sender = room.members.get(sender_session_id)
        fields = {"sender": sender_session_id}
        if sender is not None:
            fields["display_name"] = sender.display_name
        fields.update(payload or {})
        if kind in TIMESTAMPED_KINDS:
            fields["timestamp"] = datetime.now().isoformat()
        message = build_event(OUTBOUND_FOR_KIND[kind], **fields)

        delivered = 0
        for member_id in list(room.members):
            if member_id == sender_session_id:
                continue
            if self.connections.deliver(member_id, message):
                delivered += 1
        logger.debug(f"Broadcast {kind.value} from {sender_session_id} to {delivered} members of room {room_id}")
        return delivered
