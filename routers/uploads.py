import os
import time

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from werkzeug.utils import secure_filename

from constants import ALLOWED_UPLOAD_EXTENSIONS, ALLOWED_UPLOAD_MIME_TYPES, MAX_UPLOAD_SIZE, UPLOAD_DIR
from logging_config import get_logger
from schemas.rooms import FileMeta, UploadResponse

logger = get_logger(__name__)

uploads_router = APIRouter(tags=["uploads"])


def store_file(path: str, contents: bytes):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(contents)


def is_allowed(filename: str, content_type: str) -> bool:
    extension = os.path.splitext(filename)[1].lower().lstrip(".")
    if extension not in ALLOWED_UPLOAD_EXTENSIONS:
        return False
    content_type = (content_type or "").split(";")[0].strip().lower()
    return content_type in ALLOWED_UPLOAD_MIME_TYPES


@uploads_router.post("/upload", response_model=UploadResponse)
async def upload_file(request: Request, file: UploadFile = File(...)):
    """Store a shared file and return the metadata clients put in a send-file message."""
    client_host = request.client.host if request.client else "unknown"
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if not is_allowed(file.filename, file.content_type):
        logger.warning(f"Upload rejected from {client_host}: {file.filename} ({file.content_type}) not allowed")
        raise HTTPException(status_code=400, detail="File type not allowed")

    contents = await file.read(MAX_UPLOAD_SIZE + 1)
    if len(contents) > MAX_UPLOAD_SIZE:
        logger.warning(f"Upload rejected from {client_host}: {file.filename} exceeds {MAX_UPLOAD_SIZE} bytes")
        raise HTTPException(status_code=413, detail="File too large")

    stored_name = f"{int(time.time() * 1000)}-{secure_filename(file.filename) or 'upload'}"
    await run_in_threadpool(store_file, os.path.join(UPLOAD_DIR, stored_name), contents)
    logger.info(f"Stored upload {stored_name} ({len(contents)} bytes) from {client_host}")

    return UploadResponse(
        success=True,
        file=FileMeta(
            name=file.filename,
            path=f"/uploads/{stored_name}",
            mime_type=file.content_type,
            size=len(contents),
        ),
    )
