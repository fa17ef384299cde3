from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import socketio
import os
from typing import Tuple
from constants import CORS_ALLOWED_ORIGINS, LOG_FILE, LOG_LEVEL, SOCKETIO_PATH, STATIC_DIR, REGISTRY_BACKEND
from events import register_handlers
from registry import create_registry
from relay import RoomRelay
from routers.health import health_router
from transport import SocketIOTransport
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(registry=None, static_dir=STATIC_DIR) -> Tuple[socketio.ASGIApp, RoomRelay]:
    """Build the ASGI app (Socket.IO signaling with FastAPI mounted beside it) and its relay.

    The Socket.IO server and the FastAPI app stay reachable as
    ``engineio_server`` and ``other_asgi_app`` on the returned ASGI app.
    """
    api = FastAPI()

    # Configure CORS
    api.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    api.include_router(health_router)

    # Static client build, mounted last so /ping wins
    if static_dir:
        if os.path.isdir(static_dir):
            api.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
            logger.info(f"Serving static files from {static_dir}")
        else:
            logger.warning(f"STATIC_DIR {static_dir} does not exist, not serving static files")

    cors = "*" if CORS_ALLOWED_ORIGINS == ["*"] else CORS_ALLOWED_ORIGINS
    sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=cors)

    if registry is None:
        registry = create_registry(REGISTRY_BACKEND)
    relay = RoomRelay(registry, SocketIOTransport(sio))
    register_handlers(sio, relay)

    asgi_app = socketio.ASGIApp(sio, other_asgi_app=api, socketio_path=SOCKETIO_PATH)
    logger.info("Signaling application initialized")
    return asgi_app, relay


app, relay = create_app()
