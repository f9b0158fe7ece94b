"""Network interface lookup.

This module lists the local IPv4 interfaces so the server can be bound to a
named interface instead of a literal address, e.g. ``--interface wlan0``.

Example:
    host = interface_address("wlan0") or "0.0.0.0"
"""

import socket
from dataclasses import dataclass

import psutil


@dataclass
class NetworkInterface:
    """Network interface representation with its key properties.

    Attributes:
        name: Interface name (e.g., 'en0', 'eth0')
        ip: IPv4 address assigned to the interface
        is_up: Boolean indicating if the interface is up and running
        is_loopback: Boolean indicating if this is the loopback interface
    """

    name: str
    ip: str
    is_up: bool
    is_loopback: bool


def list_interfaces(*, include_down: bool = False) -> list[NetworkInterface]:
    """Return every interface that has an IPv4 address."""
    stats = psutil.net_if_stats()
    interfaces = []
    for name, addrs in psutil.net_if_addrs().items():
        ipv4 = next((addr.address for addr in addrs if addr.family == socket.AF_INET), None)
        if not ipv4:
            continue

        iface_stats = stats.get(name)
        is_up = bool(iface_stats and iface_stats.isup)
        if not is_up and not include_down:
            continue

        interfaces.append(
            NetworkInterface(name=name, ip=ipv4, is_up=is_up, is_loopback=ipv4.startswith("127."))
        )
    return interfaces


def interface_address(name: str) -> str | None:
    """Return the IPv4 address of the named interface, if it is up."""
    return next((iface.ip for iface in list_interfaces() if iface.name == name), None)
