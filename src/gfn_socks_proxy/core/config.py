"""Server configuration.

The configuration is a frozen dataclass so it can be shared by every session
thread without locking. Values come from keyword arguments, or from the
``SOCKS5_*`` environment variables through ``ServerConfig.from_env``.

Environment variables:
    SOCKS5_HOST: Bind address (default ``0.0.0.0``)
    SOCKS5_PORT: Bind port (default ``1080``)
    SOCKS5_AUTH: ``true`` to require username/password authentication
    SOCKS5_USERNAME: Expected username
    SOCKS5_PASSWORD: Expected password

Example:
    config = ServerConfig.from_env(port=9050)
    server = SocksServer(config)
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Final

DEFAULT_HOST: Final = "0.0.0.0"
DEFAULT_PORT: Final = 1080
DEFAULT_NEGOTIATION_TIMEOUT: Final = 10.0  # seconds
DEFAULT_DIAL_TIMEOUT: Final = 15.0  # seconds
MAX_PORT: Final = 65535


@dataclass(frozen=True)
class ProxyEndpoint:
    """Known public SOCKS5 endpoint, used for diagnostics only."""

    host: str
    port: int
    country: str = ""

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


DEFAULT_PUBLIC_PROXIES: Final = (
    ProxyEndpoint("165.232.105.25", 8000, "US"),
    ProxyEndpoint("72.210.252.134", 46164, "US"),
    ProxyEndpoint("184.178.172.25", 15291, "US"),
    ProxyEndpoint("107.152.98.5", 4145, "US"),
    ProxyEndpoint("142.54.228.193", 4145, "US"),
)

GEFORCE_NOW_DOMAINS: Final = (
    "play.geforcenow.com",
    "gfn-web.nvidia.com",
    "api.geforcenow.com",
    "auth.geforcenow.com",
)


@dataclass(frozen=True)
class ServerConfig:
    """Immutable SOCKS5 server configuration.

    Attributes:
        host: Address to bind the listening socket to
        port: Port to listen on, 0 for an ephemeral port
        auth: Require username/password authentication
        username: Expected username when ``auth`` is set
        password: Expected password when ``auth`` is set
        public_proxies: Informational upstream endpoints, never used for relaying
        negotiation_timeout: Bound on each handshake read, in seconds
        dial_timeout: Bound on connecting to the target, in seconds
        allowed_domains: Domains that pass the allowlist check
        enforce_allowlist: Reject domain targets outside ``allowed_domains``
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    auth: bool = False
    username: str | None = None
    password: str | None = None
    public_proxies: tuple[ProxyEndpoint, ...] = DEFAULT_PUBLIC_PROXIES
    negotiation_timeout: float = DEFAULT_NEGOTIATION_TIMEOUT
    dial_timeout: float = DEFAULT_DIAL_TIMEOUT
    allowed_domains: tuple[str, ...] = GEFORCE_NOW_DOMAINS
    enforce_allowlist: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.port <= MAX_PORT:
            msg = f"Port out of range: {self.port}"
            raise ValueError(msg)
        if self.auth and (self.username is None or self.password is None):
            msg = "Authentication requires both a username and a password"
            raise ValueError(msg)
        if self.negotiation_timeout <= 0 or self.dial_timeout <= 0:
            msg = "Timeouts must be positive"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "ServerConfig":
        """Build a configuration from ``SOCKS5_*`` variables.

        Args:
            environ: Mapping to read from (default: ``os.environ``)
            **overrides: Field values that take precedence over the environment;
                ``None`` values are ignored

        Returns:
            ServerConfig: The resulting configuration
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {
            "host": env.get("SOCKS5_HOST", DEFAULT_HOST),
            "port": int(env.get("SOCKS5_PORT", DEFAULT_PORT)),
            "auth": env.get("SOCKS5_AUTH", "").lower() == "true",
            "username": env.get("SOCKS5_USERNAME"),
            "password": env.get("SOCKS5_PASSWORD"),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "ServerConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def is_allowed_domain(self, host: str) -> bool:
        """Check a target host against the domain allowlist.

        Matches when either string contains the other, so subdomains of an
        allowed domain and bare parent names both pass.
        """
        return any(domain in host or host in domain for domain in self.allowed_domains)
