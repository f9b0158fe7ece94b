"""Outbound TCP connections to SOCKS targets.

The dialer enforces a wall-clock bound over the whole attempt, name lookup
included. Resolution runs on a worker thread that is only waited on until the
deadline, every resolved address gets only the time left, and a socket whose
attempt is abandoned is closed before moving on.

Domain names are resolved with the system resolver first. When that fails
the dnspython resolver in ``dns_handler`` is used as a fallback.
"""

import ipaddress
import socket
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Final

from loguru import logger

from gfn_socks_proxy.core.config import DEFAULT_DIAL_TIMEOUT
from gfn_socks_proxy.core.exceptions import DialError, DNSResolutionError, SocksTimeoutError

from .dns_handler import DNSResolver, dns_resolver

AddrInfo = tuple[socket.AddressFamily, socket.SocketKind, int, str, tuple]

CONNECT_TIMEOUT_MSG: Final = "Connection timeout"
RESOLVE_TIMEOUT_MSG: Final = "Name resolution timeout"
LOOKUP_WORKERS: Final = 32

# A lookup abandoned at the deadline keeps its worker until the resolver returns
_lookup_pool = ThreadPoolExecutor(max_workers=LOOKUP_WORKERS, thread_name_prefix="resolve")


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


class TargetDialer:
    """Opens TCP connections to target hosts."""

    def __init__(self, timeout: float = DEFAULT_DIAL_TIMEOUT, resolver: DNSResolver | None = None) -> None:
        self.timeout = timeout
        self.resolver = resolver or dns_resolver

    def _lookup(self, host: str, port: int, deadline: float) -> list[AddrInfo]:
        try:
            return socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as e:
            logger.debug(f"System resolver failed for {host}: {e}")

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            msg = f"No time left to resolve {host}"
            raise DNSResolutionError(msg)
        ip = self.resolver.resolve(host, lifetime=remaining)
        return [(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, "", (ip, port))]

    def _resolve(self, host: str, port: int, deadline: float) -> list[AddrInfo]:
        if _is_ip_literal(host):
            try:
                return socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, flags=socket.AI_NUMERICHOST)
            except socket.gaierror as e:
                raise DialError(host, port, str(e)) from e

        future = _lookup_pool.submit(self._lookup, host, port, deadline)
        try:
            return future.result(timeout=max(deadline - time.monotonic(), 0))
        except TimeoutError:
            future.cancel()
            cause = SocksTimeoutError(RESOLVE_TIMEOUT_MSG)
            raise DialError(host, port, str(cause)) from cause
        except DNSResolutionError as e:
            if time.monotonic() >= deadline:
                cause = SocksTimeoutError(RESOLVE_TIMEOUT_MSG)
                raise DialError(host, port, str(cause)) from cause
            raise DialError(host, port, str(e)) from e

    def dial(self, host: str, port: int, timeout: float | None = None) -> socket.socket:
        """Connect to ``host:port``.

        Args:
            host: IPv4/IPv6 literal or domain name
            port: Target port
            timeout: Wall-clock bound in seconds over resolution and connect
                (default: the dialer's timeout)

        Returns:
            socket.socket: A connected, blocking socket owned by the caller

        Raises:
            DialError: If no address could be connected to before the deadline.
                The cause is the last socket error, the resolution error or a
                ``SocksTimeoutError``.
        """
        limit = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + limit
        addresses = self._resolve(host, port, deadline)

        last_error: Exception | None = None
        for family, kind, proto, _, sockaddr in addresses:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                last_error = SocksTimeoutError(CONNECT_TIMEOUT_MSG)
                break

            remote = socket.socket(family, kind, proto)
            remote.settimeout(remaining)
            try:
                remote.connect(sockaddr)
            except TimeoutError:
                remote.close()
                last_error = SocksTimeoutError(CONNECT_TIMEOUT_MSG)
                break
            except OSError as e:
                remote.close()
                logger.debug(f"Connect to {sockaddr} failed: {e}")
                last_error = e
                continue

            remote.settimeout(None)
            return remote

        if last_error is None:
            last_error = OSError(f"No addresses found for {host}")
        raise DialError(host, port, str(last_error)) from last_error


def dial(host: str, port: int, timeout: float = DEFAULT_DIAL_TIMEOUT) -> socket.socket:
    """Connect to ``host:port`` with the default dialer."""
    return TargetDialer(timeout).dial(host, port)
