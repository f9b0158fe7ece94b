"""Allow ``python -m gfn_socks_proxy``."""

from gfn_socks_proxy.cmd.cli import app

app(prog_name="gfn-socks-proxy")
