"""Core proxy library components."""

from .auth import Authenticator
from .dialer import TargetDialer, dial
from .proxy_server import SocksProxy, SocksServer
from .proxy_stats import ProxyStats
from .relay import RelayPump, RelayResult
from .socks_handler import Session, SessionState, SocksHandler
from .upstream_check import ProxyCheckResult, check_public_proxies

__all__ = [
    "Authenticator",
    "check_public_proxies",
    "dial",
    "ProxyCheckResult",
    "ProxyStats",
    "RelayPump",
    "RelayResult",
    "Session",
    "SessionState",
    "SocksHandler",
    "SocksProxy",
    "SocksServer",
    "TargetDialer",
]
