"""Command-line interface for the SOCKS5 relay.

This module provides the main command-line interface, handling:
- Command-line argument parsing
- Configuration from options and ``SOCKS5_*`` environment variables
- Server lifecycle and shutdown on Ctrl+C
- Public proxy connectivity checks
- Interface listing

Options given on the command line take precedence over the environment.

Example:
    # Run from command line:
    $ gfn-socks-proxy serve --port 1080 --auth --username gamer --password secret
    $ gfn-socks-proxy check-proxies
"""

import time

import pyperclip
import typer
from loguru import logger

from gfn_socks_proxy import __version__
from gfn_socks_proxy.core.exceptions import BindError
from gfn_socks_proxy.core.network import interface_address, list_interfaces
from gfn_socks_proxy.core.proxy import ProxyCheckResult, ServerConfig, SocksServer, check_public_proxies
from gfn_socks_proxy.core.utils.log_config import LOG_DIR, configure_logging
from gfn_socks_proxy.core.utils.prompt import build_table, console, create_proxy_ui

app = typer.Typer(help="SOCKS5 relay for GeForce Now traffic")

WAIT_INTERVAL = 0.5  # seconds


@app.callback(invoke_without_command=True)
def version_callback() -> None:
    """Show version information."""
    console.print(f"[cyan]GFN SOCKS Proxy v{__version__}[/cyan]")


def _print_check_results(results: list[ProxyCheckResult]) -> None:
    rows = [
        (
            str(result.endpoint),
            result.endpoint.country or "-",
            "[green]working[/green]" if result.ok else "[red]failed[/red]",
            f"{result.latency * 1000:.0f} ms" if result.latency is not None else result.error or "",
        )
        for result in results
    ]
    console.print(build_table("Public SOCKS5 Proxies", ["Endpoint", "Country", "Status", "Detail"], rows))
    working = sum(result.ok for result in results)
    console.print(f"[bold]{working}/{len(results)} proxies reachable")


@app.command(name="serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Address to bind (env: SOCKS5_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on (env: SOCKS5_PORT)"),
    interface: str | None = typer.Option(None, "--interface", "-i", help="Bind to this interface's IPv4 address"),
    auth: bool | None = typer.Option(None, "--auth/--no-auth", help="Require username/password (env: SOCKS5_AUTH)"),
    username: str | None = typer.Option(None, "--username", "-u", help="Username (env: SOCKS5_USERNAME)"),
    password: str | None = typer.Option(None, "--password", help="Password (env: SOCKS5_PASSWORD)"),
    negotiation_timeout: float | None = typer.Option(None, help="Handshake read timeout in seconds"),
    dial_timeout: float | None = typer.Option(None, help="Target connect timeout in seconds"),
    enforce_allowlist: bool = typer.Option(
        default=False, help="Reject domains outside the GeForce Now allowlist instead of warning"
    ),
    check_proxies: bool = typer.Option(default=False, help="Check public proxy connectivity after start"),
    dashboard: bool = typer.Option(default=False, help="Show live statistics"),
    copy: bool = typer.Option(default=False, help="Copy the proxy address to the clipboard"),
    debug: bool = typer.Option(default=False, help="Enable debug logging"),
) -> None:
    """Start the SOCKS5 server and run until Ctrl+C."""
    configure_logging("DEBUG" if debug else "INFO")

    if interface:
        host = interface_address(interface)
        if host is None:
            console.print(f"[red]Interface {interface} not found or has no IPv4 address")
            raise typer.Exit(code=1)

    try:
        config = ServerConfig.from_env(
            host=host,
            port=port,
            auth=auth,
            username=username,
            password=password,
            negotiation_timeout=negotiation_timeout,
            dial_timeout=dial_timeout,
            enforce_allowlist=enforce_allowlist or None,
        )
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}")
        raise typer.Exit(code=2) from e

    server = SocksServer(config)
    try:
        bound_host, bound_port = server.start()
    except BindError as e:
        console.print(f"[red]Failed to start SOCKS5 Server: {e}")
        raise typer.Exit(code=1) from e

    console.print("[bold green]SOCKS5 Server started successfully")
    console.print(
        build_table(
            "Configuration",
            ["Setting", "Value"],
            [
                ("Host", bound_host),
                ("Port", str(bound_port)),
                ("Authentication", "Enabled" if config.auth else "Disabled"),
                ("Allowlist", "Enforced" if config.enforce_allowlist else "Warn only"),
                ("Logs", str(LOG_DIR)),
            ],
        )
    )

    if copy:
        try:
            pyperclip.copy(f"{bound_host}:{bound_port}")
            console.print("[bold green]Proxy address copied to clipboard")
        except pyperclip.PyperclipException as e:
            console.print(f"[yellow]Could not copy to clipboard: {e}")

    if check_proxies:
        console.print("\nTesting public proxies...")
        _print_check_results(server.test_public_proxies())

    ui = None
    if dashboard:
        ui, ui_thread = create_proxy_ui(bound_host, bound_port, server.stats, auth=config.auth)
        ui_thread.start()

    try:
        while server.running:
            time.sleep(WAIT_INTERVAL)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        console.print("\n[yellow]Shutting down SOCKS5 Server...")
    finally:
        if ui is not None:
            ui.stop()
        server.stop()


@app.command(name="check-proxies")
def check_proxies_command(
    timeout: float = typer.Option(5.0, "--timeout", "-t", help="Per-proxy connect timeout in seconds"),
) -> None:
    """Check TCP connectivity of the known public SOCKS5 proxies."""
    config = ServerConfig()
    with console.status("Testing public proxies..."):
        results = check_public_proxies(config.public_proxies, timeout=timeout)
    _print_check_results(results)


@app.command(name="interfaces")
def interfaces_command(
    all_: bool = typer.Option(False, "--all", "-a", help="Include interfaces that are down"),
) -> None:
    """List local IPv4 interfaces usable with --interface."""
    rows = [
        (iface.name, iface.ip, "up" if iface.is_up else "down", "yes" if iface.is_loopback else "no")
        for iface in list_interfaces(include_down=all_)
    ]
    if not rows:
        console.print("[red]No network interfaces with an IPv4 address found")
        raise typer.Exit(code=1)
    console.print(build_table("Network Interfaces", ["Name", "IPv4", "Status", "Loopback"], rows))


if __name__ == "__main__":
    app()
