"""SOCKS protocol handler implementation for the proxy server.

This module implements the server side of SOCKS5 (RFC 1928) with the
username/password method of RFC 1929. Each accepted connection is driven by
a ``Session`` through these states:

    NEGOTIATING -> AUTHENTICATING (optional) -> AWAITING_REQUEST
        -> CONNECTING -> RELAYING -> CLOSED

Any error moves the session straight to CLOSED. Handshake reads are plain
blocking reads with a per-phase deadline, running in the session's own
thread, so one slow or broken client never affects another.

The handler supports:
- No-auth and username/password methods
- CONNECT command only
- IPv4, domain name and IPv6 targets
- Permissive or enforced domain allowlist
- Connection statistics tracking

Example:
    # The handler is automatically used by the SocksProxy server class
    server = SocksProxy((host, port), SocksHandler, config)
    server.serve_forever()
"""

import enum
import socket
import socketserver
import time

from loguru import logger

from gfn_socks_proxy.core.config import ServerConfig
from gfn_socks_proxy.core.exceptions import (
    AuthError,
    DialError,
    ProtocolError,
    SocksTimeoutError,
    UnsupportedAddressType,
    UnsupportedCommand,
)

from .auth import Authenticator
from .codec import (
    ATYP_DOMAIN,
    AUTH_VERSION,
    METHOD_NO_ACCEPTABLE,
    METHOD_NO_AUTH,
    METHOD_USER_PASS,
    PORT_LENGTH,
    REP_ADDRESS_TYPE_NOT_SUPPORTED,
    REP_COMMAND_NOT_SUPPORTED,
    REP_GENERAL_FAILURE,
    REP_NOT_ALLOWED,
    REP_SUCCESS,
    REQUEST_HEADER_LENGTH,
    SOCKS_VERSION,
    ConnectRequest,
    Reply,
    address_length,
    decode_connect_request,
    decode_method_negotiation,
    decode_user_pass_auth,
    encode_auth_result,
    encode_method_selection,
)
from .dialer import TargetDialer
from .proxy_stats import ProxyStats
from .relay import RelayPump


class SessionState(enum.Enum):
    NEGOTIATING = "negotiating"
    AUTHENTICATING = "authenticating"
    AWAITING_REQUEST = "awaiting_request"
    CONNECTING = "connecting"
    RELAYING = "relaying"
    CLOSED = "closed"


class Session:
    """One client connection, from greeting to teardown.

    Attributes:
        client: Accepted client socket
        client_address: Peer address of the client
        state: Current ``SessionState``
        auth_method: Method selected during negotiation
        authenticated: Whether the username/password check passed
        target: Requested ``(host, port)`` once the request is decoded
        target_socket: Connected target socket once dialed
        reply: The single terminal reply sent to the client, if any
    """

    def __init__(
        self,
        client: socket.socket,
        client_address: tuple,
        config: ServerConfig,
        authenticator: Authenticator,
        dialer: TargetDialer,
        stats: ProxyStats | None = None,
    ) -> None:
        self.client = client
        self.client_address = client_address
        self.config = config
        self.authenticator = authenticator
        self.dialer = dialer
        self.stats = stats

        self.state = SessionState.NEGOTIATING
        self.auth_method: int | None = None
        self.authenticated = False
        self.target: tuple[str, int] | None = None
        self.target_socket: socket.socket | None = None
        self.reply: Reply | None = None
        self.log = logger.bind(client=f"{client_address[0]}:{client_address[1]}")

    # -- I/O helpers -------------------------------------------------------

    def _deadline(self) -> float:
        return time.monotonic() + self.config.negotiation_timeout

    def _recv_exact(self, size: int, deadline: float) -> bytes:
        """Read exactly ``size`` bytes before ``deadline``."""
        buf = bytearray()
        while len(buf) < size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                msg = f"Timed out while {self.state.value}"
                raise SocksTimeoutError(msg)
            self.client.settimeout(remaining)
            try:
                chunk = self.client.recv(size - len(buf))
            except TimeoutError as e:
                msg = f"Timed out while {self.state.value}"
                raise SocksTimeoutError(msg) from e
            if not chunk:
                msg = f"Client closed the connection while {self.state.value}"
                raise ProtocolError(msg)
            buf += chunk
        return bytes(buf)

    def _send_reply(self, status: int, bound_addr: str = "0.0.0.0", bound_port: int = 0) -> None:
        if self.reply is not None:
            msg = "A reply was already sent for this request"
            raise RuntimeError(msg)
        self.reply = Reply(status, bound_addr, bound_port)
        self.client.settimeout(self.config.negotiation_timeout)
        self.client.sendall(self.reply.to_bytes())

    # -- States ------------------------------------------------------------

    def negotiate(self) -> bool:
        """Read the greeting and select an authentication method.

        Returns:
            bool: False if no offered method is acceptable
        """
        deadline = self._deadline()
        head = self._recv_exact(2, deadline)
        body = self._recv_exact(head[1], deadline) if head[0] == SOCKS_VERSION else b""
        offered = decode_method_negotiation(head + body).methods

        if self.config.auth and METHOD_USER_PASS in offered:
            self.auth_method = METHOD_USER_PASS
            self.state = SessionState.AUTHENTICATING
        elif METHOD_NO_AUTH in offered:
            self.auth_method = METHOD_NO_AUTH
            self.state = SessionState.AWAITING_REQUEST
        else:
            self.log.info(f"No acceptable method among {sorted(offered)}")
            self.client.sendall(encode_method_selection(METHOD_NO_ACCEPTABLE))
            return False

        self.client.sendall(encode_method_selection(self.auth_method))
        return True

    def authenticate(self) -> None:
        """Run the username/password sub-negotiation.

        Raises:
            AuthError: If the credentials do not match
            ProtocolError: If the sub-negotiation is malformed
        """
        deadline = self._deadline()
        head = self._recv_exact(2, deadline)
        if head[0] != AUTH_VERSION:
            self.client.sendall(encode_auth_result(False))
            msg = f"Invalid authentication sub-negotiation version {head[0]:#04x}"
            raise ProtocolError(msg)

        username = self._recv_exact(head[1], deadline)
        password_length = self._recv_exact(1, deadline)
        password = self._recv_exact(password_length[0], deadline)
        credentials = decode_user_pass_auth(head + username + password_length + password)

        ok = self.authenticator.authenticate(credentials.username, credentials.password)
        self.client.sendall(encode_auth_result(ok))
        if not ok:
            msg = f"Authentication failed for user {credentials.username!r}"
            raise AuthError(msg)

        self.authenticated = True
        self.state = SessionState.AWAITING_REQUEST

    def _read_request_bytes(self) -> bytes:
        deadline = self._deadline()
        header = self._recv_exact(REQUEST_HEADER_LENGTH, deadline)
        if header[0] != SOCKS_VERSION:
            return header

        address_type = header[3]
        if address_type == ATYP_DOMAIN:
            prefix = self._recv_exact(1, deadline)
            rest = prefix + self._recv_exact(address_length(address_type, prefix[0]) + PORT_LENGTH, deadline)
        elif size := address_length(address_type):
            rest = self._recv_exact(size + PORT_LENGTH, deadline)
        else:
            rest = b""
        return header + rest

    def read_request(self) -> ConnectRequest | None:
        """Read and validate the connect request.

        Failures are answered with the matching reply code.

        Returns:
            ConnectRequest | None: The request, or None if it was rejected
        """
        try:
            request = decode_connect_request(self._read_request_bytes())
        except UnsupportedCommand as e:
            self.log.info(str(e))
            self._send_reply(REP_COMMAND_NOT_SUPPORTED)
            return None
        except UnsupportedAddressType as e:
            self.log.info(str(e))
            self._send_reply(REP_ADDRESS_TYPE_NOT_SUPPORTED)
            return None
        except (ProtocolError, SocksTimeoutError) as e:
            self.log.warning(f"Bad connect request: {e}")
            self._send_reply(REP_GENERAL_FAILURE)
            return None

        self.target = (request.host, request.port)

        if request.is_domain and not self.config.is_allowed_domain(request.host):
            if self.config.enforce_allowlist:
                self.log.warning(f"Rejected domain outside allowlist: {request.host}")
                self._send_reply(REP_NOT_ALLOWED)
                return None
            self.log.warning(f"Non-GeForce Now domain attempted: {request.host}")

        self.state = SessionState.CONNECTING
        return request

    def connect(self, request: ConnectRequest) -> bool:
        """Dial the target and send the terminal reply."""
        try:
            self.target_socket = self.dialer.dial(request.host, request.port, self.config.dial_timeout)
        except DialError as e:
            self.log.warning(str(e))
            self._send_reply(REP_GENERAL_FAILURE)
            return False

        bound_addr, bound_port = self.target_socket.getsockname()[:2]
        self._send_reply(REP_SUCCESS, bound_addr, bound_port)
        self.state = SessionState.RELAYING
        return True

    def relay(self) -> None:
        """Forward bytes both ways until either side closes."""
        self.client.settimeout(None)
        on_bytes = self.stats.update_bytes if self.stats else None
        result = RelayPump(self.client, self.target_socket, on_bytes).run()
        self.log.info(
            f"Relay to {self.target[0]}:{self.target[1]} finished "
            f"({result.client_to_target} bytes up, {result.target_to_client} bytes down)"
        )

    def run(self) -> None:
        """Drive the session to completion. Never raises."""
        try:
            if not self.negotiate():
                return
            if self.state is SessionState.AUTHENTICATING:
                self.authenticate()
            request = self.read_request()
            if request is None or not self.connect(request):
                return
            self.relay()
        except AuthError as e:
            self.log.warning(str(e))
        except SocksTimeoutError as e:
            self.log.info(str(e))
        except ProtocolError as e:
            self.log.warning(f"Protocol error: {e}")
        except OSError as e:
            self.log.debug(f"Socket error while {self.state.value}: {e}")
        except Exception:
            self.log.exception("Error handling SOCKS connection")
        finally:
            self.close()

    def close(self) -> None:
        """Close both sockets and mark the session closed."""
        self.state = SessionState.CLOSED
        if self.target_socket is not None:
            self.target_socket.close()
        self.client.close()


class SocksHandler(socketserver.BaseRequestHandler):
    """Handle incoming SOCKS5 connections."""

    def handle(self) -> None:
        """Handle incoming SOCKS5 connection."""
        stats: ProxyStats = self.server.stats
        stats.session_started()
        try:
            Session(
                self.request,
                self.client_address,
                self.server.config,
                self.server.authenticator,
                self.server.dialer,
                stats,
            ).run()
        finally:
            stats.session_ended()
