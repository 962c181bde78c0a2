"""Connection server: binds a port, serves the client page and the ``/ws`` stream."""

from __future__ import annotations

import asyncio
import errno
import ipaddress
import logging
import socket
from pathlib import Path
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .constants import LOOPBACK_IPV4, MAX_PORT_RETRIES
from .routes import create_router

if TYPE_CHECKING:
    from .service import VibeService

LOGGER = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"

_BIND_CONFLICT_ERRNOS = {errno.EADDRINUSE, 10048}
_STARTUP_POLL_S = 0.01
_SHUTDOWN_TIMEOUT_S = 5.0


def _is_usable_ipv4(address: str) -> bool:
    try:
        ip = ipaddress.IPv4Address(address)
    except ipaddress.AddressValueError:
        return False
    return not (ip.is_loopback or ip.is_unspecified or ip.is_link_local)


def local_ipv4() -> str:
    """Best guess at the machine's LAN address, ``127.0.0.1`` when there is none."""
    try:
        # connect() on a datagram socket only selects a route; nothing is sent.
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("10.255.255.255", 1))
            address = sock.getsockname()[0]
            if _is_usable_ipv4(address):
                return address
    except OSError:
        pass
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        infos = []
    for info in infos:
        address = str(info[4][0])
        if _is_usable_ipv4(address):
            return address
    return LOOPBACK_IPV4


def bind_with_probe(
    host: str,
    port: int,
    max_retries: int = MAX_PORT_RETRIES,
) -> tuple[socket.socket, int]:
    """Bind a listening TCP socket at *port*, trying the next ports on conflict.

    Raises the last ``OSError`` once ``max_retries`` further ports were tried,
    or immediately for errors other than "address in use".
    """
    attempt = 0
    candidate = port
    while True:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, candidate))
            sock.listen(128)
            sock.setblocking(False)
            return sock, sock.getsockname()[1]
        except OSError as exc:
            sock.close()
            if exc.errno in _BIND_CONFLICT_ERRNOS and attempt < max_retries:
                LOGGER.info("Port %d is in use; trying %d", candidate, candidate + 1)
                attempt += 1
                candidate += 1
                continue
            raise


def create_app(service: VibeService, static_dir: Path = STATIC_DIR) -> FastAPI:
    app = FastAPI(title="VibeCoding")
    app.state.service = service
    app.include_router(create_router(service))
    if (static_dir / "index.html").exists():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="public")
    else:
        LOGGER.warning("Client page missing: no index.html in %s", static_dir)
    return app


class ConnectionServer:
    """Runs a uvicorn server for the FastAPI app inside the current event loop."""

    def __init__(
        self,
        service: VibeService,
        host: str,
        port: int,
        max_port_retries: int = MAX_PORT_RETRIES,
        static_dir: Path = STATIC_DIR,
    ):
        self.service = service
        self.host = host
        self.preferred_port = port
        self.max_port_retries = max_port_retries
        self.static_dir = static_dir
        self.port: int | None = None
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> int:
        """Bind and start serving; return the resolved port."""
        sock, port = bind_with_probe(self.host, self.preferred_port, self.max_port_retries)
        app = create_app(self.service, self.static_dir)
        config = uvicorn.Config(app, log_level="warning", log_config=None, lifespan="off")
        server = uvicorn.Server(config)
        self._server = server
        self._task = asyncio.create_task(server.serve(sockets=[sock]), name="connection-server")
        try:
            while not server.started:
                if self._task.done():
                    # serve() returned or raised before startup completed
                    self._task.result()
                    raise RuntimeError("Connection server exited during startup")
                await asyncio.sleep(_STARTUP_POLL_S)
        except BaseException:
            sock.close()
            self._server = None
            self._task = None
            raise
        self.port = port
        LOGGER.info("Connection server listening on %s:%d", self.host, port)
        return port

    async def stop(self) -> None:
        """Close every client connection, then the listening socket."""
        await self.service.hub.close_all()
        server, task = self._server, self._task
        self._server = None
        self._task = None
        self.port = None
        if server is None or task is None:
            return
        server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=_SHUTDOWN_TIMEOUT_S)
        except TimeoutError:
            LOGGER.warning("Connection server did not stop in time; cancelling")
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        except Exception:
            LOGGER.warning("Connection server exited with an error", exc_info=True)
