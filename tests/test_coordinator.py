import json

import pytest

from schemas.events import InboundEvent
from tests.conftest import FakeTransport

pytestmark = pytest.mark.anyio


async def connect(coordinator):
    transport = FakeTransport()
    session_id = await coordinator.connect(transport)
    transport.clear()
    return session_id, transport


async def send(coordinator, session_id, **message):
    await coordinator.dispatch(session_id, json.dumps(message))


def test_every_inbound_event_has_a_handler(coordinator):
    assert set(coordinator._handlers) == set(InboundEvent)


async def test_full_session_flow(coordinator):
    a, ta = await connect(coordinator)
    b, tb = await connect(coordinator)

    await send(coordinator, a, type="create-room", display_name="Alice")
    room_id = ta.of_type("room-created")[0]["room_id"]

    await send(coordinator, b, type="join-room", room_id=room_id, display_name="Bob")
    assert [u["session_id"] for u in tb.of_type("room-joined")[0]["users"]] == [a, b]
    assert [u["session_id"] for u in ta.of_type("user-joined")[0]["users"]] == [a, b]

    await send(coordinator, a, type="offer", target=b, data={"sdp": "offer-sdp"})
    await send(coordinator, b, type="answer", target=a, data={"sdp": "answer-sdp"})
    await send(coordinator, a, type="ice-candidate", target=b, data={"candidate": "c1"})
    assert tb.of_type("offer") == [{"type": "offer", "sender": a, "data": {"sdp": "offer-sdp"}}]
    assert ta.of_type("answer") == [{"type": "answer", "sender": b, "data": {"sdp": "answer-sdp"}}]
    assert tb.of_type("ice-candidate")[0]["sender"] == a

    await send(coordinator, a, type="send-message", text="hello")
    await send(coordinator, a, type="send-file", file={"name": "a.txt", "path": "/uploads/a.txt"})
    await send(coordinator, a, type="typing-start")
    await send(coordinator, a, type="typing-stop")
    await send(coordinator, a, type="toggle-media", kind="video", state=True)
    assert tb.types()[-5:] == ["new-message", "new-file", "user-typing", "user-stop-typing", "user-media-toggle"]

    await send(coordinator, a, type="get-rooms")
    listing = ta.of_type("rooms-list")[0]["rooms"]
    assert [(r["room_id"], r["member_count"]) for r in listing] == [(room_id, 2)]

    await coordinator.disconnect(b)
    assert ta.of_type("user-left")[0]["session_id"] == b
    assert coordinator.rooms.get_room(room_id).member_count == 1

    await coordinator.disconnect(a)
    assert coordinator.list_rooms() == []


async def test_join_missing_room_reports_error_to_requester_only(coordinator):
    a, ta = await connect(coordinator)
    c, tc = await connect(coordinator)
    await send(coordinator, a, type="create-room", display_name="Alice")
    ta.clear()

    await send(coordinator, c, type="join-room", room_id="does-not-exist", display_name="Carol")

    assert tc.messages == [{"type": "error", "code": "room-not-found", "message": "Room does-not-exist not found"}]
    assert ta.messages == []
    assert len(coordinator.rooms) == 1


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"type": "no-such-event"}),
        json.dumps({"text": "missing type"}),
        json.dumps({"type": "create-room", "display_name": "   "}),
        json.dumps({"type": "join-room", "display_name": "Bob"}),
        json.dumps({"type": "offer", "data": {}}),
    ],
)
async def test_malformed_messages_yield_invalid_request(coordinator, raw):
    a, ta = await connect(coordinator)
    await coordinator.dispatch(a, raw)
    assert [m["code"] for m in ta.of_type("error")] == ["invalid-request"]
    assert len(coordinator.rooms) == 0


async def test_typing_outside_room_is_silent(coordinator):
    a, ta = await connect(coordinator)
    await send(coordinator, a, type="typing-start")
    assert ta.messages == []


async def test_leave_room_without_room_reports_error(coordinator):
    a, ta = await connect(coordinator)
    await send(coordinator, a, type="leave-room")
    assert ta.of_type("error")[0]["code"] == "invalid-request"


async def test_display_name_is_trimmed_once_by_presence(coordinator):
    a, ta = await connect(coordinator)
    await send(coordinator, a, type="create-room", display_name="  Alice  ")
    created = ta.of_type("room-created")[0]
    assert created["users"][0]["display_name"] == "Alice"

    b, tb = await connect(coordinator)
    await send(coordinator, b, type="join-room", room_id=created["room_id"], display_name="x" * 65)
    assert tb.of_type("error")[0]["code"] == "invalid-request"
