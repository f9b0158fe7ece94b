"""Utility functions and helpers."""

from gfn_socks_proxy.core.utils.utils import format_bytes, format_duration

__all__ = ["format_bytes", "format_duration"]
