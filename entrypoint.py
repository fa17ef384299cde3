import uvicorn
import socket
from constants import HOST, PORT, RELOAD, LOG_LEVEL, LOG_FILE
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from logging_config import get_logger

logger = get_logger(__name__)


def get_local_ip() -> str:
    """Best guess at this host's LAN address, falling back to localhost."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            # no packets are sent for a UDP connect
            s.connect(("10.255.255.255", 1))
            address = s.getsockname()[0]
        if not address.startswith("127."):
            return address
    except OSError as e:
        logger.debug(f"Could not determine network address: {e}")
    return "localhost"


if __name__ == "__main__":
    logger.info("Server running on:")
    logger.info(f"Local: http://localhost:{PORT}")
    logger.info(f"Network: http://{get_local_ip()}:{PORT}")
    uvicorn.run("app:app", host=HOST, port=PORT, reload=RELOAD)
