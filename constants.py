import os
import uuid

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3001))
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

CORS_ALLOWED_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",") if o.strip()]
SOCKETIO_PATH = os.getenv("SOCKETIO_PATH", "socket.io")
STATIC_DIR = os.getenv("STATIC_DIR", None)

REGISTRY_BACKEND = os.getenv("REGISTRY_BACKEND", "memory")

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

PRESENCE_TTL = int(os.getenv("PRESENCE_TTL", 0))  # seconds, 0 = no expiry

INBOUND_EVENT_PREFIX = os.getenv("INBOUND_EVENT_PREFIX", "BE-")
OUTBOUND_EVENT_PREFIX = os.getenv("OUTBOUND_EVENT_PREFIX", "FE-")

# names this process's presence entries in Redis; set it to keep the id stable across restarts
REGISTRY_INSTANCE_ID = os.getenv("REGISTRY_INSTANCE_ID") or uuid.uuid4().hex
