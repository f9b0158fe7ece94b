"""Core SOCKS5 relay implementation.

This package contains the core components of the relay:
- Wire codec for the SOCKS5 handshake and replies
- Session state machine and relay pump
- Threaded listener with lifecycle events
- Configuration and error taxonomy
- Network interface lookup
- Statistics tracking and terminal UI helpers

The command-line interface lives in ``gfn_socks_proxy.cmd`` and only talks
to the public API re-exported by ``gfn_socks_proxy.core.proxy``.
"""
