import socket

import pytest
from helpers import TargetServer

from gfn_socks_proxy.core.config import ServerConfig
from gfn_socks_proxy.core.lib import SocksServer, TargetDialer
from gfn_socks_proxy.core.lib.dns_handler import dns_resolver


class RecordingDialer(TargetDialer):
    """Dialer that remembers every target it was asked for."""

    def __init__(self, timeout: float = 2.0) -> None:
        super().__init__(timeout)
        self.calls: list[tuple[str, int]] = []

    def dial(self, host, port, timeout=None):
        self.calls.append((host, port))
        return super().dial(host, port, timeout)


@pytest.fixture
def echo_target():
    target = TargetServer(echo=True)
    yield target
    target.close()


@pytest.fixture
def manual_target():
    target = TargetServer(echo=False)
    yield target
    target.close()


@pytest.fixture
def closed_port() -> int:
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def dialer() -> RecordingDialer:
    return RecordingDialer()


@pytest.fixture
def make_server(dialer):
    servers: list[SocksServer] = []

    def factory(**overrides) -> SocksServer:
        settings = {"host": "127.0.0.1", "port": 0, "negotiation_timeout": 2.0, "dial_timeout": 2.0}
        settings.update(overrides)
        server = SocksServer(ServerConfig(**settings), dialer=dialer)
        server.start()
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.stop()


@pytest.fixture(autouse=True)
def clear_dns_cache():
    dns_resolver.clear_cache()
    yield
    dns_resolver.clear_cache()
