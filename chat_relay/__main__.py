"""Run the chat relay server: ``python -m chat_relay`` or ``chat-relay``."""
from __future__ import annotations

import errno
import logging
import socket
import sys

import uvicorn

from .config import get_settings
from .keys import describe_keys
from .main import create_app
from .telemetry import configure_logging

logger = logging.getLogger("chat_relay")


def bind_socket(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def main() -> int:
    configure_logging()
    settings = get_settings()

    try:
        sock = bind_socket(settings.host, settings.port)
    except OSError as exc:
        if exc.errno == errno.EADDRINUSE:
            logger.error("Port %s is already in use!", settings.port)
            logger.error("Try running: lsof -ti:%s | xargs kill", settings.port)
            logger.error("Or use a different port with: PORT=%s python -m chat_relay", settings.port + 1)
        else:
            logger.error("Error starting server: %s", exc)
        return 1

    app = create_app(settings)
    logger.info("Chat relay running at http://localhost:%s/", settings.port)
    logger.info("Supported APIs: OpenAI and Groq")
    describe_keys(settings)

    server = uvicorn.Server(uvicorn.Config(app, log_config=None))
    server.run(sockets=[sock])
    logger.info("Server closed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
