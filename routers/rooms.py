from fastapi import APIRouter, HTTPException, Request

from coordinator import Coordinator
from logging_config import get_logger
from presence import member_list, room_summaries
from schemas.rooms import RoomDetailsResponse, RoomListResponse

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_coordinator(request: Request) -> Coordinator:
    return request.app.state.coordinator


@rooms_router.get("/", response_model=RoomListResponse)
async def list_rooms(request: Request):
    """Rooms that currently have at least one participant."""
    coordinator = get_coordinator(request)
    rooms = room_summaries(coordinator.list_rooms())
    logger.debug(f"Room directory request from {request.client.host if request.client else 'unknown'}: {len(rooms)} rooms")
    return RoomListResponse(rooms=rooms)


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get room details including the current member list.

    Returns:
    - room_id: Unique room identifier
    - created_at: Room creation timestamp
    - member_count: Number of participants
    - members: session_id, display_name and joined_at for each participant
    """
    coordinator = get_coordinator(request)
    room = coordinator.rooms.get_room(room_id)
    if not room:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_id=room.room_id,
        created_at=room.created_at,
        member_count=room.member_count,
        members=member_list(room),
    )
