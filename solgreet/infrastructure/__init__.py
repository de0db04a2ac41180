"""Infrastructure layer for Solgreet.

Holds adapters for the Solana cluster, local persistence and observability.
"""

from . import ledger, observability, persistence

__all__ = ["ledger", "observability", "persistence"]
