"""
Solgreet package initializer.

This package provides a small client that deploys the hello world program to
a Solana cluster, greets an account and reports how often it was greeted.

The package exposes a ``__version__`` attribute indicating the installed
version of Solgreet. The version is read from pyproject.toml via
importlib.metadata – this is the single source of truth.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("solgreet")
except PackageNotFoundError:
    # Package is not installed (running from source without pip install -e .)
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]
