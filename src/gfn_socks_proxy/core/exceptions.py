"""Custom exceptions for the proxy server.

This module defines the error taxonomy used throughout the SOCKS5 relay:
- Malformed handshake or request bytes
- Unsupported commands and address types
- Failed credential checks
- Target connection failures
- Handshake and dial timeouts
- Listener bind failures
- DNS resolution failures

Every per-session error is terminal for that session only. The only error
that escapes the server is ``BindError``, raised from ``SocksServer.start``.

Example:
    try:
        request = decode_connect_request(data)
    except UnsupportedCommand:
        sock.sendall(encode_reply(REP_COMMAND_NOT_SUPPORTED))
"""


class ProxyError(Exception):
    """Base exception for proxy errors."""


class ProtocolError(ProxyError):
    """Raised when handshake or request bytes are malformed."""


class UnsupportedCommand(ProtocolError):
    """Raised when a request carries a command other than CONNECT."""

    def __init__(self, command: int) -> None:
        super().__init__(f"Unsupported SOCKS command: {command:#04x}")
        self.command = command


class UnsupportedAddressType(ProtocolError):
    """Raised when a request carries an unknown address type."""

    def __init__(self, address_type: int) -> None:
        super().__init__(f"Unsupported address type: {address_type:#04x}")
        self.address_type = address_type


class AuthError(ProxyError):
    """Raised when a username/password check fails."""


class DialError(ProxyError):
    """Raised when the target cannot be reached.

    The underlying socket error is available as ``__cause__``.
    """

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"Could not connect to {host}:{port}: {reason}")
        self.host = host
        self.port = port


class SocksTimeoutError(ProxyError, TimeoutError):
    """Raised when a handshake phase or a dial exceeds its time bound."""


class BindError(ProxyError, OSError):
    """Raised when the listening socket cannot be bound."""


class DNSResolutionError(ProxyError):
    """Raised when DNS resolution fails."""
