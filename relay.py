from typing import Any

from backend import ConnectionRegistry
from logging_config import get_logger
from schemas.events import OutboundEvent, SignalKind, build_event

logger = get_logger(__name__)


class SignalingRelay:
    """Forwards offer/answer/candidate messages to a single target session."""

    def __init__(self, connections: ConnectionRegistry):
        self.connections = connections

    def relay(self, kind: SignalKind, sender_session_id: str, target_session_id: str, payload: Any) -> bool:
        kind = SignalKind(kind)
        message = build_event(OutboundEvent(kind.value), sender=sender_session_id, data=payload)
        delivered = self.connections.deliver(target_session_id, message)
        if delivered:
            logger.debug(f"Relayed {kind.value} from {sender_session_id} to {target_session_id}")
        else:
            logger.debug(f"Dropped {kind.value} from {sender_session_id}: target {target_session_id} unreachable")
        return delivered
