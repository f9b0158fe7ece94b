"""Connectivity check for known public SOCKS5 endpoints.

The relay never routes traffic through these endpoints. The check only opens
a TCP connection to each one and closes it again, so an operator can see
which of them are currently reachable.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from loguru import logger

from gfn_socks_proxy.core.config import ProxyEndpoint
from gfn_socks_proxy.core.exceptions import DialError

from .dialer import TargetDialer

DEFAULT_CHECK_TIMEOUT: Final = 5.0  # seconds


@dataclass(frozen=True)
class ProxyCheckResult:
    """Outcome of checking one endpoint."""

    endpoint: ProxyEndpoint
    ok: bool
    latency: float | None = None
    error: str | None = None


def check_proxy(endpoint: ProxyEndpoint, timeout: float = DEFAULT_CHECK_TIMEOUT) -> ProxyCheckResult:
    """Open and immediately close a TCP connection to ``endpoint``."""
    dialer = TargetDialer(timeout)
    started = time.monotonic()
    try:
        sock = dialer.dial(endpoint.host, endpoint.port)
    except DialError as e:
        logger.info(f"Proxy {endpoint} failed: {e.__cause__ or e}")
        return ProxyCheckResult(endpoint, ok=False, error=str(e.__cause__ or e))

    latency = time.monotonic() - started
    sock.close()
    logger.info(f"Proxy {endpoint} is working ({latency * 1000:.0f} ms)")
    return ProxyCheckResult(endpoint, ok=True, latency=latency)


def check_public_proxies(
    endpoints: Iterable[ProxyEndpoint], timeout: float = DEFAULT_CHECK_TIMEOUT
) -> list[ProxyCheckResult]:
    """Check each endpoint in turn.

    Args:
        endpoints: Endpoints to check
        timeout: Per-endpoint connect bound in seconds

    Returns:
        list[ProxyCheckResult]: One result per endpoint, in input order
    """
    return [check_proxy(endpoint, timeout) for endpoint in endpoints]


def working_proxies(results: Iterable[ProxyCheckResult]) -> list[ProxyEndpoint]:
    return [result.endpoint for result in results if result.ok]
