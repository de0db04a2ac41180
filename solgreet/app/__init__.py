"""Application layer.

Holds configuration shared by the services and the command-line interface.
"""

from . import config

__all__ = ["config"]
