"""SOCKS proxy server implementation.

This module owns the listening socket and the lifecycle around it:
- Binding and listening, with ``BindError`` on failure
- One daemon thread per accepted connection
- Background accept loop with start/stop
- Lifecycle events (``started``, ``stopped``, ``error``) for a supervisor
- Status reporting

Sessions share nothing but the immutable ``ServerConfig`` and the
statistics tracker. Stopping the server stops accepting; sessions already
in progress run to completion on their own.

Example:
    server = SocksServer(ServerConfig(port=1080))
    server.on("started", lambda info: print(info))
    host, port = server.start()
    ...
    server.stop()
"""

import socket
import socketserver
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Final

from loguru import logger

from gfn_socks_proxy.core.config import ServerConfig
from gfn_socks_proxy.core.exceptions import BindError

from .auth import Authenticator
from .dialer import TargetDialer
from .proxy_stats import ProxyStats
from .socks_handler import SocksHandler
from .upstream_check import DEFAULT_CHECK_TIMEOUT, ProxyCheckResult, check_public_proxies

EVENTS: Final = ("started", "stopped", "error")
POLL_INTERVAL: Final = 0.5  # seconds
THREAD_JOIN_TIMEOUT: Final = 5.0  # seconds

EventCallback = Callable[..., None]


class SocksProxy(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """Threaded TCP server carrying the per-server session collaborators."""

    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False
    request_queue_size = 100

    def __init__(
        self,
        server_address: tuple[str, int],
        handler_class: type[socketserver.BaseRequestHandler],
        config: ServerConfig,
        dialer: TargetDialer | None = None,
        stats: ProxyStats | None = None,
    ) -> None:
        if ":" in server_address[0]:
            self.address_family = socket.AF_INET6
        self.config = config
        self.authenticator = Authenticator(config.username, config.password)
        self.dialer = dialer or TargetDialer(config.dial_timeout)
        self.stats = stats or ProxyStats()
        super().__init__(server_address, handler_class)


class SocksServer:
    """Lifecycle wrapper around ``SocksProxy``.

    Runs the accept loop in a background thread and notifies subscribers of
    lifecycle events.
    """

    def __init__(self, config: ServerConfig | None = None, dialer: TargetDialer | None = None) -> None:
        self.config = config or ServerConfig()
        self.dialer = dialer
        self.stats = ProxyStats()
        self._server: SocksProxy | None = None
        self._thread: threading.Thread | None = None
        self._listeners: dict[str, list[EventCallback]] = defaultdict(list)

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def address(self) -> tuple[str, int] | None:
        """Actual bound address, once started."""
        if self._server is None:
            return None
        host, port = self._server.server_address[:2]
        return host, port

    def on(self, event: str, callback: EventCallback) -> None:
        """Subscribe to a lifecycle event.

        Args:
            event: One of ``started``, ``stopped``, ``error``
            callback: Called with the event payload, if any
        """
        if event not in EVENTS:
            msg = f"Unknown event {event!r}, expected one of {EVENTS}"
            raise ValueError(msg)
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in self._listeners[event]:
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Error in {event!r} listener")

    def start(self) -> tuple[str, int]:
        """Bind, listen and start accepting connections.

        Returns:
            tuple[str, int]: The bound host and port

        Raises:
            BindError: If the listening socket cannot be bound
        """
        if self._server is not None:
            msg = "Server is already running"
            raise RuntimeError(msg)

        try:
            server = SocksProxy(
                (self.config.host, self.config.port),
                SocksHandler,
                self.config,
                dialer=self.dialer,
                stats=self.stats,
            )
        except OSError as e:
            error = BindError(f"Cannot bind {self.config.host}:{self.config.port}: {e}")
            logger.error(str(error))
            self._emit("error", error)
            raise error from e

        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": POLL_INTERVAL},
            name="socks-accept",
            daemon=True,
        )
        self._thread.start()

        host, port = self.address
        logger.info(f"SOCKS5 Server listening on {host}:{port}")
        self._emit("started", {"host": host, "port": port})
        return host, port

    def stop(self) -> None:
        """Stop accepting connections and close the listening socket.

        Sessions already in progress are not interrupted.
        """
        server, self._server = self._server, None
        if server is None:
            return

        server.shutdown()
        server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=THREAD_JOIN_TIMEOUT)
            self._thread = None

        logger.info("SOCKS5 Server stopped")
        self._emit("stopped")

    def status(self) -> dict[str, Any]:
        """Report the server's configuration and counters."""
        host, port = self.address or (self.config.host, self.config.port)
        return {
            "running": self.running,
            "host": host,
            "port": port,
            "auth": self.config.auth,
            "public_proxies": len(self.config.public_proxies),
            **self.stats.snapshot(),
        }

    def test_public_proxies(self, timeout: float = DEFAULT_CHECK_TIMEOUT) -> list[ProxyCheckResult]:
        """Check connectivity of the configured public proxy endpoints."""
        return check_public_proxies(self.config.public_proxies, timeout=timeout)

    def __enter__(self) -> "SocksServer":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
