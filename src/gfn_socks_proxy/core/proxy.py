"""Public entry point for the SOCKS5 relay.

This module exposes the pieces a supervisor needs to embed the relay:
configuration, the server with its lifecycle and the upstream endpoint check.

Example:
    from gfn_socks_proxy.core.proxy import ServerConfig, SocksServer

    server = SocksServer(ServerConfig(host="127.0.0.1", port=1080))
    host, port = server.start()
"""

from .config import ProxyEndpoint, ServerConfig
from .exceptions import BindError
from .lib import ProxyCheckResult, SocksServer, check_public_proxies

__all__ = [
    "BindError",
    "check_public_proxies",
    "ProxyCheckResult",
    "ProxyEndpoint",
    "ServerConfig",
    "SocksServer",
]
