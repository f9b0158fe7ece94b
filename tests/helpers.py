"""Client-side helpers for talking SOCKS5 to a server under test."""

import queue
import socket
import struct
import threading
import time

ATYP_IPV4 = 0x01
ATYP_DOMAIN = 0x03
ATYP_IPV6 = 0x04


def recv_exact(sock: socket.socket, size: int) -> bytes:
    buf = b""
    while len(buf) < size:
        chunk = sock.recv(size - len(buf))
        if not chunk:
            break
        buf += chunk
    return buf


def open_client(address: tuple[str, int], timeout: float = 5.0) -> socket.socket:
    return socket.create_connection(address, timeout=timeout)


def greet(sock: socket.socket, methods: tuple[int, ...] = (0x00,)) -> bytes:
    sock.sendall(bytes([5, len(methods), *methods]))
    return recv_exact(sock, 2)


def user_pass(sock: socket.socket, username: str, password: str) -> bytes:
    user, pwd = username.encode(), password.encode()
    sock.sendall(bytes([1, len(user)]) + user + bytes([len(pwd)]) + pwd)
    return recv_exact(sock, 2)


def connect_request(host: str, port: int, atyp: int = ATYP_IPV4, command: int = 0x01) -> bytes:
    if atyp == ATYP_IPV4:
        address = socket.inet_aton(host)
    elif atyp == ATYP_IPV6:
        address = socket.inet_pton(socket.AF_INET6, host)
    else:
        name = host.encode()
        address = bytes([len(name)]) + name
    return bytes([5, command, 0, atyp]) + address + struct.pack("!H", port)


def read_reply(sock: socket.socket) -> bytes:
    return recv_exact(sock, 10)


def is_closed(sock: socket.socket, timeout: float = 3.0) -> bool:
    """True if the peer closed the connection within ``timeout``."""
    sock.settimeout(timeout)
    try:
        return sock.recv(1) == b""
    except ConnectionResetError:
        return True
    except TimeoutError:
        return False


def wait_for(predicate, timeout: float = 3.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class TargetServer:
    """Loopback TCP server that either echoes or hands connections to the test."""

    def __init__(self, echo: bool = True) -> None:
        self.echo = echo
        self.sock = socket.create_server(("127.0.0.1", 0))
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self.accepted: queue.Queue[socket.socket] = queue.Queue()
        self._running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def address(self) -> tuple[str, int]:
        return "127.0.0.1", self.port

    def _serve(self) -> None:
        while self._running:
            try:
                conn, _ = self.sock.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            if self.echo:
                threading.Thread(target=self._echo, args=(conn,), daemon=True).start()
            else:
                self.accepted.put(conn)

    @staticmethod
    def _echo(conn: socket.socket) -> None:
        with conn:
            while True:
                try:
                    data = conn.recv(4096)
                except OSError:
                    return
                if not data:
                    return
                conn.sendall(data)

    def next_connection(self, timeout: float = 3.0) -> socket.socket:
        conn = self.accepted.get(timeout=timeout)
        conn.settimeout(timeout)
        return conn

    def close(self) -> None:
        self._running = False
        self._thread.join(timeout=2)
        self.sock.close()
