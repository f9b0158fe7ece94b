"""Bidirectional relay between a SOCKS client and its target.

Two copy loops run concurrently, one per direction. Whichever loop ends
first, on EOF or on a socket error, shuts down and closes both sockets so the
other loop's blocking ``recv`` returns. The relay is finished once both loops
have returned.

Errors never leave the relay; they are logged and end the session.

Example:
    pump = RelayPump(client_sock, target_sock)
    result = pump.run()
    print(result.client_to_target, result.target_to_client)
"""

import socket
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from loguru import logger

BUFFER_SIZE: Final = 65536

# Called with (sent_to_target, sent_to_client) after every forwarded chunk
BytesCallback = Callable[[int, int], None]


@dataclass
class RelayResult:
    """Bytes forwarded in each direction."""

    client_to_target: int = 0
    target_to_client: int = 0


class RelayPump:
    """Copies bytes both ways until either side closes."""

    def __init__(
        self,
        client: socket.socket,
        target: socket.socket,
        on_bytes: BytesCallback | None = None,
        buffer_size: int = BUFFER_SIZE,
    ) -> None:
        self.client = client
        self.target = target
        self.on_bytes = on_bytes
        self.buffer_size = buffer_size
        self.result = RelayResult()
        self._closed = False
        self._close_lock = threading.Lock()
        self.done = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Shut down and close both sockets. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        for sock in (self.client, self.target):
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # already disconnected
            sock.close()

    def _pipe(self, source: socket.socket, sink: socket.socket, upstream: bool) -> None:
        direction = "client->target" if upstream else "target->client"
        try:
            while True:
                data = source.recv(self.buffer_size)
                if not data:
                    break
                sink.sendall(data)
                sent = (len(data), 0) if upstream else (0, len(data))
                self.result.client_to_target += sent[0]
                self.result.target_to_client += sent[1]
                if self.on_bytes:
                    self.on_bytes(*sent)
        except OSError as e:
            if not self._closed:
                logger.debug(f"Relay {direction} error: {e}")
        finally:
            self.close()

    def run(self) -> RelayResult:
        """Relay until both directions have finished.

        Returns:
            RelayResult: Byte counts per direction
        """
        downstream = threading.Thread(
            target=self._pipe,
            args=(self.target, self.client, False),
            name="relay-target-client",
            daemon=True,
        )
        downstream.start()
        try:
            self._pipe(self.client, self.target, True)
        finally:
            downstream.join()
            self.done.set()
        return self.result
