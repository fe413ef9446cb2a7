import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, UPLOAD_DIR
from coordinator import Coordinator
from errors import InvalidRequest
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from routers.uploads import uploads_router
from transport import WebSocketTransport

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Single in-memory authority for this process; rebuilt on every startup
    app.state.coordinator = Coordinator()
    logger.info("Room coordinator started")
    yield
    logger.info(f"Room coordinator stopping with {len(app.state.coordinator.connections)} live sessions")


app = FastAPI(lifespan=lifespan)

# Configure CORS to allow all origins by default
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)
app.include_router(uploads_router)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")

logger.info("FastAPI application initialized")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """One session per WebSocket.

    Every text frame is a JSON message with a "type" field (create-room,
    join-room, offer, send-message, ...). Whatever ends the loop, the session
    is disconnected from the coordinator before the socket is closed.
    """
    coordinator: Coordinator = websocket.app.state.coordinator
    await websocket.accept()

    transport = WebSocketTransport(websocket)
    transport.start()
    session_id = await coordinator.connect(transport)
    logger.info(f"WebSocket connection accepted for session {session_id}")

    message_count = 0
    try:
        while True:
            try:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000))
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected normally for session {session_id}")
                break
            message_count += 1
            logger.debug(f"Received message #{message_count} from session {session_id}")

            data = frame.get("text")
            if data is None:
                coordinator.send_error(session_id, InvalidRequest("Binary frames are not supported"))
                continue
            await coordinator.dispatch(session_id, data)
    except Exception as e:
        logger.error(f"WebSocket error for session {session_id}: {e}", exc_info=True)
    finally:
        try:
            # Cleanup must finish even if this task is being cancelled
            await asyncio.shield(coordinator.disconnect(session_id))
        finally:
            await transport.close()
