"""DNS resolution using dnspython.

Used by the target dialer as a fallback when the system resolver cannot
resolve a domain requested by a SOCKS client. Answers are kept in dnspython's
LRU cache, so they expire with their record TTL and the number of cached
names is bounded no matter what clients ask for.
"""

import time
from typing import TYPE_CHECKING, Final, cast

import dns.exception
import dns.resolver
from loguru import logger

from gfn_socks_proxy.core.exceptions import DNSResolutionError

if TYPE_CHECKING:
    from dns.resolver import Resolver

# DNS resolver constants
DEFAULT_TIMEOUT = 1.0  # seconds
DEFAULT_LIFETIME = 3.0  # seconds
DEFAULT_CACHE_SIZE: Final = 1024  # names
DEFAULT_NAMESERVERS = [
    "1.1.1.1",  # Cloudflare
    "8.8.8.8",  # Google
    "9.9.9.9",  # Quad9
]


class DNSResolver:
    """Simple DNS resolver using dnspython."""

    def __init__(self, nameservers: list[str] | None = None, cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        """Initialize the DNS resolver with default settings."""
        self.nameservers = list(nameservers or DEFAULT_NAMESERVERS)
        self.cache = dns.resolver.LRUCache(cache_size)
        self.resolver = self._make_resolver(self.nameservers)

    def _make_resolver(self, nameservers: list[str]) -> "Resolver":
        resolver = cast("Resolver", dns.resolver.Resolver(configure=False))
        resolver.timeout = DEFAULT_TIMEOUT
        resolver.lifetime = DEFAULT_LIFETIME
        resolver.nameservers = nameservers
        resolver.cache = self.cache
        return resolver

    def _try_resolver(self, domain: str, resolver: "Resolver", lifetime: float) -> str | None:
        """Try resolving an A record through the given resolver."""
        try:
            answer = resolver.resolve(domain, "A", lifetime=lifetime)
        except dns.exception.DNSException as e:
            logger.debug(f"Nameservers {resolver.nameservers} failed for {domain}: {e}")
            return None
        return str(answer[0])

    def resolve(self, domain: str, *, lifetime: float | None = None) -> str:
        """Resolve domain name to IP address.

        Args:
            domain: Domain name to resolve
            lifetime: Wall-clock bound in seconds over every attempt
                (default: one resolver lifetime per attempt)

        Returns:
            str: Resolved IPv4 address

        Raises:
            DNSResolutionError: If resolution fails or the lifetime runs out
        """
        deadline = None if lifetime is None else time.monotonic() + lifetime
        # Shared resolver first, then one nameserver at a time in case the first is unreachable
        resolvers = [self.resolver, *(self._make_resolver([ns]) for ns in self.nameservers)]

        for resolver in resolvers:
            remaining = DEFAULT_LIFETIME if deadline is None else deadline - time.monotonic()
            if remaining <= 0:
                error_msg = f"Resolving {domain} timed out"
                logger.debug(error_msg)
                raise DNSResolutionError(error_msg)
            if ip := self._try_resolver(domain, resolver, min(remaining, DEFAULT_LIFETIME)):
                return ip

        error_msg = f"Could not resolve {domain} using any available method"
        logger.error(error_msg)
        raise DNSResolutionError(error_msg)

    def clear_cache(self) -> None:
        self.cache.flush()


# Global resolver instance
dns_resolver = DNSResolver()
