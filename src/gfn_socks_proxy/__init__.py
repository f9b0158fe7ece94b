"""SOCKS5 relay for routing GeForce Now traffic."""

import pathlib
import tomllib
from importlib import metadata

DISTRIBUTION = "gfn-socks-proxy"


def get_version() -> str:
    """Read version from the installed metadata or pyproject.toml."""
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        pass

    # Source checkout: look for pyproject.toml in parent directories
    current_dir = pathlib.Path(__file__).parent
    for parent in [current_dir, *current_dir.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            with pyproject_path.open("rb") as f:
                pyproject_data = tomllib.load(f)
            return pyproject_data["project"]["version"]

    return "0.0.0"


__version__ = get_version()
