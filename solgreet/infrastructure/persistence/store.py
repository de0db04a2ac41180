"""JSON document store used to remember deployments between runs.

Each key is a file name inside a single store directory and each record is a
JSON object. Writes go through a temporary file that is renamed over the
target, so an interrupted run never leaves a half-written document behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from solgreet.infrastructure.observability import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """Base class for config store failures."""


class NotFoundError(StoreError):
    """Raised when no record has been saved under a key."""


class CorruptionError(StoreError):
    """Raised when a stored document cannot be parsed."""


class ConfigStore:
    """Key/value store backed by JSON files in one directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not key or key in (".", "..") or "/" in key or "\\" in key:
            raise ValueError(f"Invalid store key: {key!r}")
        return self.directory / key

    def load(self, key: str) -> dict[str, Any]:
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"No record stored under '{key}' ({path})") from exc
        try:
            record = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise CorruptionError(f"Record '{key}' is not UTF-8 text: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CorruptionError(f"Record '{key}' is not valid JSON: {exc}") from exc
        if not isinstance(record, dict):
            raise CorruptionError(
                f"Record '{key}' must be a JSON object, got {type(record).__name__}"
            )
        return record

    def save(self, key: str, record: dict[str, Any]) -> None:
        path = self.path_for(key)
        payload = json.dumps(record, indent=2)
        self.directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.directory, prefix=f".{key}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved record '%s' to %s", key, path)

    def delete(self, key: str) -> bool:
        """Remove a record. Returns False when nothing was stored."""
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Deleted record '%s' (%s)", key, path)
        return True
