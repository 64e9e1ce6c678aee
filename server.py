"""
Start and stop the Restaurants API as a background uvicorn server.

``start`` connects to MongoDB, binds the listening socket and serves the app
on a worker thread; the returned ``ServerHandle`` is what ``stop`` needs to
shut everything down again.
"""

import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Optional

import uvicorn
from pymongo import MongoClient

from config import settings
from database import connect, get_collection
from main import create_app

logger = logging.getLogger(__name__)

STARTUP_POLL_SECONDS = 0.05


@dataclass
class ServerHandle:
    client: MongoClient
    server: uvicorn.Server
    sock: socket.socket
    thread: threading.Thread
    port: int

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the server thread exits."""
        self.thread.join(timeout)


def _bind(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen()
    except OSError:
        sock.close()
        raise
    return sock


def start(database_url: str = settings.database_url, port: int = settings.port,
          host: str = settings.host) -> ServerHandle:
    """Connect to the store, then listen on ``port``. Raises if either step fails."""
    client = connect(database_url)
    try:
        sock = _bind(host, port)
    except OSError:
        logger.error("Could not listen on %s:%s", host, port)
        client.close()
        raise

    bound_port = sock.getsockname()[1]
    app = create_app(get_collection(client))
    config = uvicorn.Config(app, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)
    thread = threading.Thread(
        target=server.run, kwargs={"sockets": [sock]}, name="restaurants-api", daemon=True
    )
    thread.start()

    while not server.started:
        if not thread.is_alive():
            client.close()
            sock.close()
            raise RuntimeError("Server exited during startup")
        time.sleep(STARTUP_POLL_SECONDS)

    logger.info("Your app is listening on port %s", bound_port)
    return ServerHandle(client=client, server=server, sock=sock, thread=thread, port=bound_port)


def stop(handle: ServerHandle) -> None:
    """Close the store connection, then the listening socket."""
    handle.client.close()
    logger.info("Closing server")
    handle.server.should_exit = True
    handle.thread.join()
    handle.sock.close()


if __name__ == "__main__":
    handle = start()
    try:
        handle.wait()
    except KeyboardInterrupt:
        pass
    finally:
        stop(handle)
