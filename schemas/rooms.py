from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ParticipantInfo(BaseModel):
    session_id: str
    display_name: str
    joined_at: datetime


class RoomSummaryResponse(BaseModel):
    room_id: str
    member_count: int
    created_at: datetime


class RoomListResponse(BaseModel):
    rooms: list[RoomSummaryResponse]


class RoomDetailsResponse(BaseModel):
    room_id: str
    created_at: datetime
    member_count: int
    members: list[ParticipantInfo]


class FileMeta(BaseModel):
    name: str
    path: str
    mime_type: Optional[str] = None
    size: int


class UploadResponse(BaseModel):
    success: bool
    file: FileMeta
