"""Prompt and UI utilities."""

from gfn_socks_proxy.core.utils.prompt.prompt import PromptHandler, build_table, console
from gfn_socks_proxy.core.utils.prompt.proxy_ui import ProxyUI, create_proxy_ui

__all__ = ["build_table", "console", "create_proxy_ui", "PromptHandler", "ProxyUI"]
