"""CLI interface facades for Solgreet.

This package is the home for all Click commands; ``cli`` is the top-level
group installed as the ``solgreet`` console script.
"""

from .__main__ import cli
from .hello import hello
from .reset import reset
from .status import status

__all__ = ["cli", "hello", "reset", "status"]
