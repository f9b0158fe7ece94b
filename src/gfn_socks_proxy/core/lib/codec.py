"""SOCKS5 wire codec.

Pure encode/decode functions for the messages exchanged during a SOCKS5
handshake (RFC 1928) and the username/password sub-negotiation (RFC 1929).
Nothing here touches a socket; the session handler reads the bytes and hands
complete messages to these functions.

Message layouts:
    Method negotiation:  VER | NMETHODS | METHODS...
    Method selection:    VER | METHOD
    User/pass request:   VER(0x01) | ULEN | UNAME | PLEN | PASSWD
    User/pass result:    VER(0x01) | STATUS
    Connect request:     VER | CMD | RSV | ATYP | DST.ADDR | DST.PORT
    Reply:               VER | REP | RSV | ATYP(0x01) | BND.ADDR(4) | BND.PORT

Replies are always produced in IPv4 form, whatever address type the client
used in its request.

Example:
    request = decode_connect_request(b"\\x05\\x01\\x00\\x01\\xc0\\xa8\\x01\\x01\\x1f\\x90")
    assert (request.host, request.port) == ("192.168.1.1", 8080)
"""

import ipaddress
import struct
from dataclasses import dataclass
from typing import Final

from gfn_socks_proxy.core.exceptions import (
    ProtocolError,
    UnsupportedAddressType,
    UnsupportedCommand,
)

# SOCKS protocol constants
SOCKS_VERSION: Final = 0x05
AUTH_VERSION: Final = 0x01

METHOD_NO_AUTH: Final = 0x00
METHOD_USER_PASS: Final = 0x02
METHOD_NO_ACCEPTABLE: Final = 0xFF

AUTH_SUCCESS: Final = 0x00
AUTH_FAILURE: Final = 0xFF

CMD_CONNECT: Final = 0x01

ATYP_IPV4: Final = 0x01
ATYP_DOMAIN: Final = 0x03
ATYP_IPV6: Final = 0x04

# Reply codes
REP_SUCCESS: Final = 0x00
REP_GENERAL_FAILURE: Final = 0x01
REP_NOT_ALLOWED: Final = 0x02
REP_NETWORK_UNREACHABLE: Final = 0x03
REP_HOST_UNREACHABLE: Final = 0x04
REP_CONNECTION_REFUSED: Final = 0x05
REP_TTL_EXPIRED: Final = 0x06
REP_COMMAND_NOT_SUPPORTED: Final = 0x07
REP_ADDRESS_TYPE_NOT_SUPPORTED: Final = 0x08

DEFAULT_BIND_ADDR: Final = "0.0.0.0"

IPV4_LENGTH: Final = 4
IPV6_LENGTH: Final = 16
PORT_LENGTH: Final = 2
REQUEST_HEADER_LENGTH: Final = 4
REPLY_LENGTH: Final = 10


@dataclass(frozen=True)
class MethodNegotiation:
    """Authentication methods offered by the client."""

    methods: frozenset[int]


@dataclass(frozen=True)
class UserPassAuth:
    """Credentials sent in the username/password sub-negotiation."""

    username: str
    password: str


@dataclass(frozen=True)
class ConnectRequest:
    """Parsed SOCKS5 CONNECT request.

    Attributes:
        command: Request command, always ``CMD_CONNECT`` once decoded
        address_type: One of ``ATYP_IPV4``, ``ATYP_DOMAIN``, ``ATYP_IPV6``
        host: Dotted-quad, hostname or colon-hex target address
        port: Target port
    """

    command: int
    address_type: int
    host: str
    port: int

    @property
    def is_domain(self) -> bool:
        return self.address_type == ATYP_DOMAIN


@dataclass(frozen=True)
class Reply:
    """Reply sent to the client in answer to a request."""

    status: int
    bound_addr: str = DEFAULT_BIND_ADDR
    bound_port: int = 0

    def to_bytes(self) -> bytes:
        return encode_reply(self.status, self.bound_addr, self.bound_port)


def decode_method_negotiation(data: bytes) -> MethodNegotiation:
    """Decode the client greeting.

    Args:
        data: Raw greeting bytes

    Returns:
        MethodNegotiation: The offered methods

    Raises:
        ProtocolError: If the greeting is shorter than 3 bytes or not SOCKS5
    """
    if len(data) < 3 or data[0] != SOCKS_VERSION:
        msg = "Invalid SOCKS version"
        raise ProtocolError(msg)
    count = data[1]
    return MethodNegotiation(methods=frozenset(data[2 : 2 + count]))


def encode_method_selection(method: int) -> bytes:
    """Encode the server's method choice."""
    return struct.pack("!BB", SOCKS_VERSION, method)


def decode_user_pass_auth(data: bytes) -> UserPassAuth:
    """Decode a username/password sub-negotiation request.

    Raises:
        ProtocolError: On truncated input or a sub-version other than 0x01
    """
    if len(data) < 2 or data[0] != AUTH_VERSION:
        msg = "Invalid authentication sub-negotiation version"
        raise ProtocolError(msg)

    username_end = 2 + data[1]
    if len(data) < username_end + 1:
        msg = "Truncated authentication request"
        raise ProtocolError(msg)

    password_end = username_end + 1 + data[username_end]
    if len(data) < password_end:
        msg = "Truncated authentication request"
        raise ProtocolError(msg)

    try:
        username = data[2:username_end].decode()
        password = data[username_end + 1 : password_end].decode()
    except UnicodeDecodeError as e:
        msg = "Credentials are not valid UTF-8"
        raise ProtocolError(msg) from e
    return UserPassAuth(username=username, password=password)


def encode_auth_result(ok: bool) -> bytes:
    """Encode the sub-negotiation status."""
    return struct.pack("!BB", AUTH_VERSION, AUTH_SUCCESS if ok else AUTH_FAILURE)


def _format_ipv6(raw: bytes) -> str:
    # Eight uncompressed, unpadded hex groups
    return ":".join(f"{group:x}" for group in struct.unpack("!8H", raw))


def decode_connect_request(data: bytes) -> ConnectRequest:
    """Decode a SOCKS5 request.

    Args:
        data: Raw request bytes, header through port

    Returns:
        ConnectRequest: The parsed request

    Raises:
        ProtocolError: On a bad version byte or truncated input
        UnsupportedCommand: If the command is not CONNECT
        UnsupportedAddressType: If the address type is not IPv4, domain or IPv6
    """
    if len(data) < REQUEST_HEADER_LENGTH or data[0] != SOCKS_VERSION:
        msg = "Invalid SOCKS request header"
        raise ProtocolError(msg)

    command, address_type = data[1], data[3]
    if command != CMD_CONNECT:
        raise UnsupportedCommand(command)

    if address_type not in (ATYP_IPV4, ATYP_DOMAIN, ATYP_IPV6):
        raise UnsupportedAddressType(address_type)

    start = REQUEST_HEADER_LENGTH
    if address_type == ATYP_DOMAIN:
        if len(data) <= start:
            msg = "Truncated domain length"
            raise ProtocolError(msg)
        start += 1
        end = start + data[REQUEST_HEADER_LENGTH]
    else:
        end = start + address_length(address_type)

    if len(data) < end + PORT_LENGTH:
        msg = "Truncated SOCKS request"
        raise ProtocolError(msg)

    raw = data[start:end]
    if address_type == ATYP_IPV4:
        host = ".".join(str(octet) for octet in raw)
    elif address_type == ATYP_IPV6:
        host = _format_ipv6(raw)
    else:
        try:
            host = raw.decode()
        except UnicodeDecodeError as e:
            msg = "Domain name is not valid UTF-8"
            raise ProtocolError(msg) from e

    (port,) = struct.unpack("!H", data[end : end + PORT_LENGTH])
    return ConnectRequest(command=command, address_type=address_type, host=host, port=port)


def encode_reply(status: int, bound_addr: str = DEFAULT_BIND_ADDR, bound_port: int = 0) -> bytes:
    """Encode a 10-byte IPv4-form reply.

    A bound address that is not an IPv4 literal is reported as 0.0.0.0.
    """
    try:
        addr_bytes = ipaddress.IPv4Address(bound_addr).packed
    except ValueError:
        addr_bytes = ipaddress.IPv4Address(DEFAULT_BIND_ADDR).packed

    response = struct.pack("!BBBB", SOCKS_VERSION, status, 0, ATYP_IPV4)
    return response + addr_bytes + struct.pack("!H", bound_port)


def address_length(address_type: int, first_byte: int | None = None) -> int:
    """Number of address bytes that follow the request header.

    For domain names ``first_byte`` is the length prefix, already read, and the
    result counts the remaining name bytes. Unknown types return 0.
    """
    if address_type == ATYP_IPV4:
        return IPV4_LENGTH
    if address_type == ATYP_IPV6:
        return IPV6_LENGTH
    if address_type == ATYP_DOMAIN and first_byte is not None:
        return first_byte
    return 0
