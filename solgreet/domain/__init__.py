"""Domain layer facade for Solgreet.

Pure models that do not concern network or filesystem details.
"""

from . import models

__all__ = ["models"]
