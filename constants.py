import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# 0 disables the limit
MAX_ROOM_MEMBERS = int(os.getenv("MAX_ROOM_MEMBERS", 20))
MAX_DISPLAY_NAME_LENGTH = int(os.getenv("MAX_DISPLAY_NAME_LENGTH", 64))

# Per-session outbound buffer; messages beyond this are dropped
OUTBOUND_QUEUE_SIZE = int(os.getenv("OUTBOUND_QUEUE_SIZE", 256))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", 10 * 1024 * 1024))
ALLOWED_UPLOAD_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "mp4", "avi", "mov", "pdf", "doc", "docx", "txt"}
ALLOWED_UPLOAD_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "video/mp4",
    "video/x-msvideo",
    "video/quicktime",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}
