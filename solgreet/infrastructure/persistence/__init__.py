"""Local persistence adapters."""

from .store import ConfigStore, CorruptionError, NotFoundError, StoreError

__all__ = ["ConfigStore", "CorruptionError", "NotFoundError", "StoreError"]
