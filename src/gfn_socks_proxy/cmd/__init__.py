"""Command line interface modules.

This package provides the ``gfn-socks-proxy`` command for:
- Starting the SOCKS5 server
- Checking public proxy connectivity
- Listing local network interfaces
"""
