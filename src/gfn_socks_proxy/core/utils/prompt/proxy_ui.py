"""Live statistics panel for a running proxy server."""

import threading
import time

from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gfn_socks_proxy.core.lib.proxy_stats import ProxyStats
from gfn_socks_proxy.core.utils.utils import format_bytes, format_duration

from .prompt import PromptHandler, console

BANDWIDTH_THRESHOLD = 100  # bytes


class ProxyUI(PromptHandler):
    """UI handler for the proxy server."""

    def __init__(self, host: str, port: int, stats: ProxyStats, *, auth: bool = False) -> None:
        """Initialize the proxy UI handler.

        Args:
            host: Address the proxy server is bound to
            port: Port the proxy server is listening on
            stats: Statistics tracker of the running server
            auth: Whether the server requires authentication
        """
        super().__init__()
        self.host = host
        self.port = port
        self.stats = stats
        self.auth = auth
        self.running = True
        self._last_bandwidth = 0.0
        self._start_time = time.monotonic()
        self._refresh_rate = 0.5

    def generate_table(self) -> Table:
        """Generate statistics table."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green", no_wrap=True)

        bandwidth = self.stats.get_bandwidth()
        if abs(bandwidth - self._last_bandwidth) > BANDWIDTH_THRESHOLD:
            self._last_bandwidth = bandwidth

        elapsed = time.monotonic() - self._start_time
        spinner_text = self._spinner.render(elapsed)
        counters = self.stats.snapshot()

        table.add_row("Bandwidth", Text.assemble(spinner_text, f" {format_bytes(self._last_bandwidth)}/s"))
        table.add_row("Active Sessions", str(counters["active_sessions"]))
        table.add_row("Total Sessions", str(counters["total_sessions"]))
        table.add_row("Client -> Target", format_bytes(counters["bytes_sent"]))
        table.add_row("Target -> Client", format_bytes(counters["bytes_received"]))
        table.add_row("Authentication", "enabled" if self.auth else "disabled")
        table.add_row("Uptime", format_duration(self.stats.uptime))
        return table

    def generate_display(self) -> Panel:
        """Generate the main display panel."""
        title = Text(f"SOCKS5 Proxy: {self.host}:{self.port}", style="bold cyan")
        return Panel(
            self.generate_table(),
            title=title,
            subtitle="Press Ctrl+C to exit",
            border_style="blue",
            padding=(1, 2),
        )

    def run(self) -> None:
        """Refresh the panel until ``stop`` is called."""
        with Live(
            self.generate_display(),
            console=console,
            refresh_per_second=4,
            transient=True,
            auto_refresh=False,
        ) as live:
            while self.running:
                live.update(self.generate_display(), refresh=True)
                time.sleep(self._refresh_rate)

    def stop(self) -> None:
        self.running = False


def create_proxy_ui(
    host: str, port: int, stats: ProxyStats, *, auth: bool = False
) -> tuple[ProxyUI, threading.Thread]:
    """Create the UI and the daemon thread that runs it."""
    ui = ProxyUI(host, port, stats, auth=auth)
    return ui, threading.Thread(target=ui.run, name="proxy-ui", daemon=True)

