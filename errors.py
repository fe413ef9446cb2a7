from typing import Optional


class CoordinatorError(Exception):
    """Base class for errors reported back to the requesting session."""

    code = "internal-error"
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RoomNotFound(CoordinatorError):
    code = "room-not-found"
    default_message = "Room not found"


class RoomFull(CoordinatorError):
    code = "room-full"
    default_message = "Room is full"


class InvalidRequest(CoordinatorError):
    code = "invalid-request"
    default_message = "Invalid request"


class TargetUnreachable(CoordinatorError):
    """Raised when a session has no live transport. Never sent to clients."""

    code = "target-unreachable"
    default_message = "Target is not connected"
