"""Statistics tracking and monitoring for the SOCKS proxy server.

This module provides real-time statistics tracking for the proxy server, including:
- Active and total session counting
- Bandwidth monitoring
- Per-direction data transfer tracking

Statistics are the only state shared between session threads. They are
diagnostic only: no session reads them to make a decision. Every update is
made under a lock.

Example:
    stats = ProxyStats()
    stats.session_started()
    stats.update_bytes(sent=1024, received=2048)
    stats.session_ended()
"""

import threading
import time
from collections import deque
from datetime import UTC, datetime
from typing import Final

BANDWIDTH_WINDOW: Final = 5  # seconds


class ProxyStats:
    """Thread-safe statistics tracker for the SOCKS proxy server.

    Maintains real-time statistics about proxy server operations including:
    - Active session count
    - Total sessions accepted since start
    - Bytes relayed client to target and target to client
    - Bandwidth usage and history
    - Server uptime
    """

    def __init__(self) -> None:
        """Initialize proxy statistics tracker.

        Creates a new statistics tracker with zeroed counters and
        an empty bandwidth history buffer.
        """
        self.active_sessions = 0
        self.total_sessions = 0
        self.total_bytes_sent = 0
        self.total_bytes_received = 0
        # One [second, bytes] bucket per wall-clock second
        self.bandwidth_history: deque[list[int]] = deque(maxlen=BANDWIDTH_WINDOW + 1)
        self.start_time = datetime.now(tz=UTC)
        self._lock = threading.Lock()

    def update_bytes(self, sent: int, received: int) -> None:
        """Update byte transfer statistics.

        Args:
            sent: Number of bytes forwarded from client to target
            received: Number of bytes forwarded from target to client
        """
        with self._lock:
            self.total_bytes_sent += sent
            self.total_bytes_received += received
            second = int(time.time())
            if self.bandwidth_history and self.bandwidth_history[-1][0] == second:
                self.bandwidth_history[-1][1] += sent + received
            else:
                self.bandwidth_history.append([second, sent + received])

    def get_bandwidth(self) -> float:
        """Calculate current bandwidth usage in bytes per second.

        Returns:
            float: Average bandwidth usage over the last 5 seconds in bytes/second
        """
        with self._lock:
            cutoff = int(time.time()) - BANDWIDTH_WINDOW
            total_bytes = sum(bytes_ for second, bytes_ in self.bandwidth_history if second > cutoff)
        return total_bytes / BANDWIDTH_WINDOW

    def session_started(self) -> None:
        """Count a newly accepted session."""
        with self._lock:
            self.active_sessions += 1
            self.total_sessions += 1

    def session_ended(self) -> None:
        """Decrement the active session counter."""
        with self._lock:
            self.active_sessions -= 1

    @property
    def uptime(self) -> float:
        """Seconds since the tracker was created."""
        return (datetime.now(tz=UTC) - self.start_time).total_seconds()

    def snapshot(self) -> dict[str, int]:
        """Return a consistent copy of the counters."""
        with self._lock:
            return {
                "active_sessions": self.active_sessions,
                "total_sessions": self.total_sessions,
                "bytes_sent": self.total_bytes_sent,
                "bytes_received": self.total_bytes_received,
            }
