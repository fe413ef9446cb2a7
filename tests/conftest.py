import os
import tempfile

# Shared by the /upload route and the /uploads static mount; set before the app modules import constants
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="roomrelay-uploads-")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from coordinator import Coordinator  # noqa: E402


class FakeTransport:
    """Collects delivered messages in memory."""

    def __init__(self):
        self.messages = []
        self.closed = False

    def deliver(self, message: dict) -> bool:
        if self.closed:
            return False
        self.messages.append(message)
        return True

    def of_type(self, event_type: str):
        return [m for m in self.messages if m["type"] == event_type]

    def types(self):
        return [m["type"] for m in self.messages]

    def clear(self):
        self.messages.clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def coordinator():
    return Coordinator(max_room_members=3)


@pytest.fixture
def client():
    from app import app

    with TestClient(app) as test_client:
        yield test_client
